#
# setup.py: roi_tools package setup file
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# NOTE: before making new roi_tools package release,
# increment the version number in `roi_tools/_version.py`
#


from setuptools import setup, find_packages
from pathlib import Path

root_path = Path(__file__).resolve().parent

# get version
exec(open(root_path / "roi_tools/_version.py").read())

# load README.md
readme = open(root_path / "README.md", encoding="utf-8").read()

setup(
    name="roi_tools",
    version=__version__,  # noqa
    description="Region of interest editing and motion detection configuration tools",
    author="DeGirum",
    license="MIT",
    long_description=readme,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["roi_tools", "roi_tools.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
    ],
    entry_points={
        "console_scripts": [
            "roi_tools = roi_tools:_command_entrypoint",
        ]
    },
    install_requires=[
        line.strip()
        for line in open(root_path / "requirements.txt")
        if line.strip() and not line.startswith("#")
    ],
    python_requires=">=3.8",
    # extras
    extras_require={
        # linters for CI/CD
        "linting": [
            "black",
            "mypy",
            "flake8",
            "pre-commit",
            "types-Pillow",
            "types-requests",
        ],
        # testing for CI/CD
        "testing": ["pytest", "coverage"],
        # building for CI/CD
        "build": ["build"],
        # interactive editor
        "editor": ["tk"],
    },
    include_package_data=True,
)
