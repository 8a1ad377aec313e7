"""Test suite for physicus.

1. Core (core/)
   - Math splitting and rendering
   - Error classification and messages
   - Configuration from the environment
   - Domain models

2. Client (core/client/)
   - Prompt building and history truncation
   - Streamed chat sessions
   - Structured requests and credential validation

3. Controller (core/controller/)
   - Pure state transitions
   - Effect execution end to end against a fake service

4. Views (ui/)
   - Conversation, worksheet and selection rendering
   - Console runtime commands
"""
