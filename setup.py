"""
navcache - Navigation-aware predictive page cache
Pattern learning, bounded TTL/LRU cache, and speculative pre-caching
"""

from setuptools import find_packages, setup

setup(
    name="navcache",
    version="0.1.0",
    description="Predictive page cache that learns navigation patterns and pre-fetches likely next pages",
    author="navcache Development Team",
    packages=find_packages(include=["navcache", "navcache.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "networkx>=3.0.0",
        "numpy>=1.24.0",
        "prometheus-client>=0.17.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "mypy>=1.5.0",
            "black>=23.9.0",
            "ruff>=0.0.290",
        ],
    },
)
