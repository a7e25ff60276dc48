#!/usr/bin/python3
# Setup file for gitvault
# Copyright (C) 2026 The gitvault contributors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

tests_require = ["pytest"]


setup(
    name="gitvault",
    version="0.1.0",
    description="Embeddable storage engine for git-compatible object databases",
    license="Apache-2.0 OR GPL-2.0-or-later",
    packages=["gitvault"],
    package_data={"": ["py.typed"]},
    python_requires=">=3.10",
    install_requires=["filelock>=3.32"],
    extras_require={"test": tests_require},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: Software Development :: Version Control",
    ],
)
