#!/usr/bin/env python
from setuptools import setup, find_packages

setup(
    name="metalogpipe",
    version="0.1.0",
    description="Metalog quantile-parameterized distributions with monotonicity-constrained fitting",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",

    # picks up metalogpipe/ and its subpackages, not tests or docs
    packages=find_packages(exclude=["tests*", "docs*", "notebooks*"]),

    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
        "cvxpy>=1.3",
    ],
    extras_require={
        "dev": [
            "pytest",
            "black",
            "flake8",
        ],
        "test": [
            "pytest",
        ],
    },

    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],

    include_package_data=False,
)
