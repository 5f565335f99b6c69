#!/usr/bin/env python

from setuptools import setup

setup(
    name="xcresolve",
    version="0.1.0",
    packages=[
        "xcresolve",
        "xcresolve.details",
        "xcresolve.pbxproj",
    ],
    python_requires=">=3.9",
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["xcresolve = xcresolve.__main__:main"]},
)
