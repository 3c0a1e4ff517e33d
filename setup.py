"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/cranlike/cranlike"
KEYWORDS = "R CRAN package repository index DESCRIPTION artifactory nexus"
HERE = os.path.dirname(os.path.abspath(__file__))


if __name__ == "__main__":
    setup(
        name="cranlike",
        version="0.1.0",
        description="Client for CRAN-like R package repositories",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.9",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=[
            "requests>=2.25",
            "tqdm>=4.60",
        ],
        extras_require={
            "test": ["pytest>=7.0"],
        },
        entry_points={
            "console_scripts": [
                "cranlike=cranlike.cli:main",
            ],
        },
    )
