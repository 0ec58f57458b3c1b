"""Setup script for headless."""

from setuptools import setup, find_packages

# Long description from the README
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="headless",
    version="0.1.0",
    author="Headless Contributors",
    description="Async client for the browser remote debugging protocol",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.5.0",
        "structlog>=24.1.0",
        "httpx>=0.25.0",
        "websockets>=13.0",
    ],
    extras_require={
        "examples": [
            "python-dotenv>=1.0.0",
        ],
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
)
