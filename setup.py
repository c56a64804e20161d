"""
Setup configuration for adb-vnet-injector
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8')

setup(
    name="adb-vnet-injector",
    version="1.0.0",
    author="adb-vnet-injector contributors",
    author_email="",
    description="Reconfigure an existing Azure Databricks workspace to use VNet injection",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Information Technology",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=[
        "PyYAML>=6.0",
        "jsonschema>=4.17.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.2.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "adb-vnet-injector=adb_vnet_injector.cli:main",
        ],
    },
    include_package_data=True,
    package_data={
        "adb_vnet_injector": [
            "schemas/*.yaml",
        ],
    },
    zip_safe=False,
    keywords=[
        "azure",
        "databricks",
        "arm-templates",
        "vnet-injection",
        "infrastructure-as-code",
    ],
)
