#!/usr/bin/env python3

"""
Setup configuration for sitemap_ingest package.

This library provides sitemap-driven crawl scheduling including:
- Sitemap and sitemap index fetching and parsing
- robots.txt enforcement with per-host caching
- Change-frequency heuristics for page ranking
- Bounded, throttled concurrent page processing
- DynamoDB-backed configuration
"""

from setuptools import find_packages, setup

setup(
    name="sitemap_ingest",
    version="0.1.0",
    description="Sitemap discovery and crawl scheduling for RAG ingestion",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "boto3>=1.34.0",
        # Crawling dependencies
        "httpx>=0.27.0",
        "beautifulsoup4>=4.12.0",
        "lxml>=5.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
    author="Development Team",
    license="MIT-0",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
