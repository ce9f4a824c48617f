"""Setup script for the verihub audit package"""

from pathlib import Path
from setuptools import find_packages, setup

readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

setup(
    name="verihub",
    version="0.1.0",
    description="Audit French/Dutch assistant answers against a verified fact base",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="verihub",
    packages=find_packages(include=["verihub", "verihub.*"]),
    package_data={
        "verihub": ["data/*.json", "data/*.yaml"],
    },
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0.0",
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "Flask>=2.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "verihub=verihub.cli:main",
        ]
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
