#!/usr/bin/env python
# -*- coding: utf-8 -*-

# pylint: skip-file

from setuptools import find_packages, setup

##### Dependencies of fitcflow

requirements = [
    "check_shapes>=1.0.0",
    "deprecated",
    "multipledispatch>=0.6",
    "numpy",
    "packaging",
    "tabulate",
    "tensorflow-probability[tf]>=0.12.0",
    "tensorflow>=2.4.0",
    "typing_extensions",
]


def read_file(filename: str) -> str:
    with open(filename, encoding="utf-8") as f:
        return f.read().strip()


version = read_file("VERSION")
readme_text = read_file("README.md")

packages = find_packages(".", include=["fitcflow", "fitcflow.*"])

setup(
    name="fitcflow",
    version=version,
    author="The fitcflow Contributors",
    description="FITC sparse Gaussian process regression inference in TensorFlow",
    long_description=readme_text,
    long_description_content_type="text/markdown",
    license="Apache License 2.0",
    keywords="machine-learning gaussian-processes sparse fitc tensorflow",
    packages=packages,
    install_requires=requirements,
    extras_require={"test": ["pytest"]},
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: Apache Software License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Typing :: Typed",
    ],
)
