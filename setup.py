"""Build script for imgseek.

Pure-Python package: numpy does the pixel arithmetic and OpenCV handles
decoding, display, cascade classifiers and contour analysis.  Tests run
with pytest (``pip install -e .[test]``).
"""

import os

from setuptools import find_packages, setup


def _read_long_description():
    """Return the package docstring as the long description."""
    setup_dir = os.path.dirname(os.path.abspath(__file__))
    init_path = os.path.join(setup_dir, "imgseek", "__init__.py")
    with open(init_path, "r", encoding="utf-8") as f:
        first = f.readline().strip()
    return first.strip('"')


setup(
    name="imgseek",
    version="0.1.0",
    description="Locate a small image inside a larger one with integral-image prefiltering",
    long_description=_read_long_description(),
    packages=find_packages(include=["imgseek", "imgseek.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "opencv-python<5",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "imgseek=imgseek.cli:main",
        ],
    },
)
