#!/usr/bin/env python3
"""
Setup script for Strix.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_file.exists():
    requirements = [
        line.strip()
        for line in requirements_file.read_text().splitlines()
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="strix",
    version="0.3.0",
    description="Cache-backed sessions with encrypted, fingerprint-bound cookies for ASGI apps",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Strix Contributors",
    packages=find_packages(include=["strix", "strix.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=requirements + [
        "cryptography>=41.0.0",
    ],
    extras_require={
        "redis": [
            "redis>=5.0.1",
        ],
        "msgpack": [
            "msgpack>=1.0.0",
        ],
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "msgpack>=1.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: Session",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    keywords="sessions cookies cache asgi security",
)
