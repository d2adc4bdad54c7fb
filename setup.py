"""
Setup file for gridmdp package
"""
from setuptools import setup, find_packages

setup(
    name="gridmdp",
    version="0.1.0",
    packages=find_packages(include=["gridmdp", "gridmdp.*"]),
    install_requires=[
        "numpy>=1.24.0",
        "tqdm>=4.66.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ]
    },
    python_requires=">=3.8",
)
