"""
Crypto Fundamentals Analyzer - Setup Configuration
Automated fundamentals scoring for crypto assets from market, social and on-chain data
"""

from setuptools import setup, find_namespace_packages
import os

# Read the README file
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Read requirements
def read_requirements(file):
    """Read requirements from file"""
    if os.path.exists(file):
        with open(file, 'r') as f:
            return [line.strip() for line in f if line.strip() and not line.startswith('#')]
    return []

setup(
    name="fundamentals-analyzer",
    version="1.0.0",
    description="Composite fundamentals scoring (0-10, GREEN/YELLOW/RED) for crypto assets",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Financial and Insurance Industry",
        "Topic :: Office/Business :: Financial :: Investment",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Framework :: AsyncIO",
    ],
    packages=find_namespace_packages(
        include=["analysis*", "config*", "data*", "monitoring*", "utils*"]
    ),
    py_modules=["main"],
    python_requires=">=3.11",
    install_requires=read_requirements("requirements.txt"),
    extras_require={
        "dev": read_requirements("test-requirements.txt"),
    },
    entry_points={
        "console_scripts": [
            "fundamentals-analyzer=main:main",
        ],
    },
    include_package_data=True,
    package_data={
        "config": ["*.yaml", "*.json"],
    },
    zip_safe=False,
    keywords=[
        "cryptocurrency", "fundamentals", "defi", "on-chain",
        "tokenomics", "liquidity", "coingecko", "scoring",
    ],
)
