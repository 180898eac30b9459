#!/usr/bin/env python

# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later

# -*- encoding: utf-8 -*-

from glob import glob
from os.path import basename
from os.path import splitext

from setuptools import find_packages
from setuptools import setup


setup(
    name="tmuxpad",
    version="0.0.0",
    license="GPL-3.0-or-later",
    description="An on-screen keyboard for driving a tmux pane from the mouse or a touchscreen",
    long_description="Renders a clickable keyboard in a terminal and forwards each key to a tmux pane with send-keys.",
    author="Rose Davidson",
    author_email="rose@metaclassical.com",
    packages=find_packages("src"),
    package_dir={"": "src"},
    py_modules=[splitext(basename(path))[0] for path in glob("src/*.py")],
    include_package_data=True,
    zip_safe=False,
    classifiers=[
        # complete classifier list: http://pypi.python.org/pypi?%3Aaction=list_classifiers
        "Development Status :: 3 - Alpha",
        "Environment :: Console :: Curses",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
        "Operating System :: POSIX",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Terminals",
    ],
    keywords=["tmux", "keyboard", "touchscreen"],
    python_requires=">=3.11",
    install_requires=[
        "attrs",
        "blessed>=1.20",
        "cattrs>=22.1.0",
        "msgspec",
        "outcome",
        "tricycle>=0.2.1",
        "trio>=0.23.0",
    ],
    tests_require=["pytest>=6.2.4", "pytest-trio>=0.8.0"],
    extras_require={
        "test": ["pytest>=6.2.4", "pytest-trio>=0.8.0"],
    },
    setup_requires=[
        "setuptools>=30.3.0",
        "wheel",
    ],
    entry_points={
        "console_scripts": [
            "tmuxpad = tmuxpad.app:main",
            "tmuxpad-check-layout = tmuxpad.scripts:check_layout_cli",
        ]
    },
)
