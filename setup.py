"""
CareComply setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="carecomply",
    version="1.0.0",
    description="CareComply — Document Compliance & Folder Override Engine",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"carecomply.taxonomy": ["default_taxonomy.yaml"]},
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "carecomply=carecomply.cli:main",
        ],
    },
    install_requires=[
        "sqlalchemy>=2.0",
        "psycopg2-binary>=2.9",
        "pydantic>=2.5",
        "pyyaml>=6.0",
        "httpx>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
        ],
    },
)
