#!/usr/bin/env python3
"""
Setup script for ChisqFX
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

# Read requirements
def parse_requirements(filename):
    """Parse requirements file, excluding comments and dev dependencies."""
    requirements = []
    with open(this_directory / filename, "r") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and not line.startswith("pytest"):
                requirements.append(line)
    return requirements

# Core requirements
install_requires = parse_requirements("requirements.txt")

# Development requirements
dev_requires = [
    "pytest>=7.0.0",
    "pytest-cov>=4.0.0",
    "black>=22.0.0",
    "flake8>=5.0.0",
    "mypy>=0.991",
]

setup(
    name="chisqfx",
    version="1.0.0",
    description="Chi-squared k-mer feature extraction for categorized metagenomic samples",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["chisqfx", "chisqfx.*"]),
    python_requires=">=3.8",
    install_requires=install_requires,
    extras_require={
        "dev": dev_requires,
        "all": dev_requires,
    },
    entry_points={
        "console_scripts": [
            "chisqfx=chisqfx.cli:main",
        ],
    },
    include_package_data=True,
    keywords=[
        "bioinformatics",
        "metagenomics",
        "k-mer",
        "chi-squared",
        "de Bruijn graph",
        "feature extraction",
        "microbiome",
    ],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Natural Language :: English",
    ],
    license="MIT",
    zip_safe=False,
)
