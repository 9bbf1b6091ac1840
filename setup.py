
#!/usr/bin/env python
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages
import os
import codecs

# Get the long description from the README file
with codecs.open('README.md', encoding='utf-8') as f:
    long_description = f.read()

# Get package version
with open(os.path.join('paint_squares', '__init__.py'), 'r') as f:
    for line in f:
        if line.startswith('__version__'):
            version = line.split('=')[1].strip().strip('"').strip("'")
            break

# Main setup configuration
setup(
    name='paint-squares',
    version=version,
    description='Grid based binding analysis of single-molecule tracks',
    long_description=long_description,
    long_description_content_type='text/markdown',
    author='Paint Squares Team',
    author_email='example@example.com',
    packages=find_packages(include=['paint_squares', 'paint_squares.*']),
    include_package_data=True,
    install_requires=[
        'numpy>=1.18.0',
        'scipy>=1.4.0',
        'pandas>=1.0.0',
        'matplotlib>=3.1.0',
        'pyyaml>=5.3.0',
    ],
    extras_require={
        'dev': [
            'pytest>=5.4.0',
            'pytest-cov>=2.8.0',
            'flake8>=3.7.0',
            'black>=19.10b0',
        ],
        'excel': [
            'openpyxl>=3.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'paint-squares=paint_squares.__main__:main',
        ],
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Bio-Informatics',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
    ],
    keywords='microscopy, single-molecule, binding, residence-time, tracking',
    python_requires='>=3.8',
)
