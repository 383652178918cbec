"""Setup script for pngfront."""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    required = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="pngfront",
    version="0.1.0",
    description="Bounded PNG decode front-end with a fixed RGBA8 output layout and stable status codes",
    author="Team Converge",
    packages=find_packages(include=["pngfront", "pngfront.*"]),
    python_requires=">=3.8",
    install_requires=required,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "pngfront=pngfront.cli:main",
        ],
    },
    include_package_data=True,
)
