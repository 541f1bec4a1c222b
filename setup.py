#!/usr/bin/env python
"""
Setup script for codeprobe
"""

from setuptools import setup, find_packages
import os

# Read README if it exists, otherwise use short description
try:
    readme_path = os.path.join(os.path.dirname(__file__), "README.md")
    with open(readme_path, "r", encoding="utf-8") as fh:
        long_description = fh.read()
except FileNotFoundError:
    long_description = "Multi-language test execution and heuristic bug detection engine."

setup(
    name="codeprobe",
    version="0.1.0",
    author="codeprobe team",
    description="Multi-language test execution and heuristic bug detection engine",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["codeprobe", "codeprobe.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=[
        "flask>=2.3.0",
        "pydantic>=2.0.0",
        "requests>=2.28.0",
        "python-dotenv>=0.21.0",
        "click>=8.0.0",
        "tabulate>=0.9.0",
    ],
    extras_require={
        "google": ["google-generativeai>=0.3.0"],
        "ollama": ["ollama>=0.1.0"],
        "test": ["pytest>=7.0.0"],
    },
    entry_points={
        "console_scripts": [
            "codeprobe=codeprobe.cli:cli",
        ],
    },
)
