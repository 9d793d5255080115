"""
This script configures the installation of the 'ospool' Python package using setuptools.
Defines the package metadata, dependencies, and entry points for the command-line interface (CLI).
The CLI command 'ospool' is linked to the 'cli.ospool' function, which exposes queue status,
the directory staging pass and submit description previews for the OSPool HTCondor executor.

Run 'pip install -e .' to install the package in editable mode for development purposes.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="ospool",
    version="0.1.0",
    description="HTCondor job submission for the Open Science Pool",
    long_description = long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires='>=3.8',
    install_requires=[
        'omegaconf',
        'click',
        'rich'
    ],
    extras_require={
        'test': [
            'pytest',
            'pyyaml'
        ],
    },
    entry_points={
        'console_scripts': ['ospool=ospool.cli:ospool'],
    },
)
