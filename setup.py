#!/usr/bin/env python
""" Query parameters to MongoDB queries: search, filter, sort, paginate, populate, count """

from setuptools import setup, find_packages

setup(
    name='mongoparams',
    version='1.0.0',
    license='BSD',
    description=__doc__,
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    keywords=['mongodb', 'motor', 'aggregation', 'rest'],

    packages=find_packages(exclude=('tests',)),
    scripts=[],
    entry_points={},

    python_requires='>= 3.8',
    install_requires=[
        'motor >= 3.0',
        'pymongo >= 4.0',
    ],
    extras_require={
        'test': [
            'pytest',
            'mongomock-motor',
        ],
    },
    include_package_data=True,

    platforms='any',
    classifiers=[
        # https://pypi.python.org/pypi?%3Aaction=list_classifiers
        'Development Status :: 5 - Production/Stable',
        'Intended Audience :: Developers',
        'Natural Language :: English',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Software Development :: Libraries :: Python Modules',
        'Topic :: Database',
    ],
)
