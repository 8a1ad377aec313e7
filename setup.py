from setuptools import setup, find_packages

setup(
    name="physicus",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src", exclude=["tests", "tests.*"]),
    install_requires=[
        "pydantic",
        "mirascope[google]>=1.0,<2",
        "google-genai",
        "httpx",
        "python-dotenv",
        "rich",
        "pylatexenc",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "physicus=physicus.ui.runtime:main",
        ],
    },
    python_requires=">=3.10",
    # Add metadata for PyPI
    description="Socratic physics tutor for the terminal, backed by Gemini",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
)
