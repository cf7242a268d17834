#!/usr/bin/env python3

# python setup.py sdist --format=zip,gztar

import sys
import importlib.util

from setuptools import setup, find_packages

MIN_PYTHON_VERSION = "3.8.0"
_min_python_version_tuple = tuple(map(int, (MIN_PYTHON_VERSION.split("."))))


if sys.version_info[:3] < _min_python_version_tuple:
    sys.exit("Error: lninvoice requires Python version >= %s..." % MIN_PYTHON_VERSION)

with open('contrib/requirements/requirements.txt') as f:
    requirements = f.read().splitlines()

with open('contrib/requirements/requirements-tests.txt') as f:
    requirements_tests = f.read().splitlines()

# load version.py; needlessly complicated alternative to "imp.load_source":
version_spec = importlib.util.spec_from_file_location('version', 'lninvoice/version.py')
version_module = version = importlib.util.module_from_spec(version_spec)
version_spec.loader.exec_module(version_module)

extras_require = {
    'tests': requirements_tests,
}


setup(
    name="lninvoice",
    version=version.LNINVOICE_VERSION,
    python_requires='>={}'.format(MIN_PYTHON_VERSION),
    install_requires=requirements,
    extras_require=extras_require,
    packages=(['lninvoice',]
              + [('lninvoice.'+pkg) for pkg in
                 find_packages('lninvoice', exclude=["tests"])]),
    package_dir={
        'lninvoice': 'lninvoice'
    },
    description="BOLT11 payment request codec and LSP route hint merging",
    license="MIT Licence",
    long_description="""Decode BOLT11 Lightning invoices, and rebuild them with LSP route hints for external signing.""",
)
