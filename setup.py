# setup.py
from setuptools import setup, find_packages

setup(
    name="forms_db",
    version="0.1.0",
    description="Local metadata catalog for offline form definitions and their derived artifacts",
    author="Swift Fox",
    packages=find_packages(
        exclude=(
            "tests",
            "tests.*",
            "docs",
            "build",
            "dist",
        )
    ),
    python_requires=">=3.10",
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "forms-db=forms_db.cli:main",
        ],
    },
)
