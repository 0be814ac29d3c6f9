#!/usr/bin/env python3
"""
Setup script for wpmirror - WordPress to static content mirror.
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='wpmirror',
    version='1.0.0',
    description='Mirror WordPress posts and images into static JSON and WebP assets',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'requests>=2.27',
        'Pillow>=9.1',
        'PyYAML>=5.4',
        'tqdm>=4.60',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'pytest-cov>=4.0',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Internet :: WWW/HTTP :: Site Management',
        'Topic :: Multimedia :: Graphics :: Graphics Conversion',
    ],
    python_requires='>=3.8',
    entry_points={
        'console_scripts': [
            'wpmirror=wpmirror.cli:main',
        ],
    },
    keywords='wordpress, graphql, static site, webp, headless cms',
)
