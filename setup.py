#!/usr/bin/env python3

import ast
import setuptools

with open('pyreap/__init__.py') as file:
    long_description = ast.get_docstring(ast.parse(file.read()))

setuptools.setup(
    name='pyreap',
    version='0.1.0',
    description='pyreap - spawn child processes that always get reaped',
    long_description=long_description,
    long_description_content_type='text/plain',
    packages=['pyreap'],
    python_requires='>=3.10',
    install_requires=['funcpipes'],
    extras_require={'test': ['pytest']},
)
