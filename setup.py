#!/usr/bin/env python
import os
import sys

from setuptools import setup, find_namespace_packages

PACKAGES = find_namespace_packages(include=["mrrt.*"])

# Get version and release info, which is all stored in mrrt/espirit/version.py
ver_file = os.path.join("mrrt", "espirit", "version.py")
with open(ver_file) as f:
    exec(f.read())
# Give setuptools a hint to complain if it's too old a version
# 40.1.0 added find_namespace_packages
# Should match pyproject.toml
SETUP_REQUIRES = ["setuptools >= 40.1.0"]
# This enables setuptools to install wheel on-the-fly
SETUP_REQUIRES += ["wheel"] if "bdist_wheel" in sys.argv else []

opts = dict(
    name=NAME,
    maintainer=MAINTAINER,
    maintainer_email=MAINTAINER_EMAIL,
    description=DESCRIPTION,
    long_description=LONG_DESCRIPTION,
    url=URL,
    download_url=DOWNLOAD_URL,
    license=LICENSE,
    classifiers=CLASSIFIERS,
    author=AUTHOR,
    author_email=AUTHOR_EMAIL,
    platforms=PLATFORMS,
    version=VERSION,
    packages=PACKAGES,
    package_data=PACKAGE_DATA,
    install_requires=REQUIRES,
    extras_require=EXTRAS_REQUIRE,
    python_requires=PYTHON_REQUIRES,
    setup_requires=SETUP_REQUIRES,
)

if __name__ == "__main__":
    setup(**opts)
