# SPDX-License-Identifier: LGPL-3.0-or-later
from setuptools import setup, find_packages

setup(
    name="ova2esxi",
    version="0.1.0",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[l.strip() for l in open("requirements.txt", encoding="utf-8") if l.strip() and not l.startswith("#")],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["ova2esxi=ova2esxi.__main__:main"]},
)
