"""
Setup configuration for the Production Breakdown tool.
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name="production-breakdown",
    version="1.0.0",
    description="Turns production-brief documents into structured production breakdowns with Claude",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Multimedia :: Video",
        "Topic :: Text Processing",
        "Framework :: FastAPI",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        "python-multipart>=0.0.9",
        "pydantic>=2.5.0",
        "structlog>=23.1.0",
        "tenacity>=8.2.0",
        "python-dotenv>=1.0.0",
        "pymupdf>=1.23.0",
        "pypdf>=4.0.0",
        "langchain-core>=0.3.0",
        "langchain-anthropic>=0.3.0",
        "python-docx>=1.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
            "pytest-cov>=4.0.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "production-breakdown=breakdown.cli:main",
        ],
    },
    keywords="production breakdown pdf claude summarization film video",
)
