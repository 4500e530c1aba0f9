import re

import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

# read the version without importing the package (and its requirements)
with open("pysmilep1/__init__.py", "r") as fh:
    __version__ = '.'.join(re.search(r"version_tuple = \((\d+), (\d+), (\d+)\)", fh.read()).groups())

setuptools.setup(
    name="pysmilep1",
    version=__version__,
    author="pysmilep1",
    description="Python module to read power and gas meter data from a Plugwise Smile P1 gateway",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(),
    install_requires=[
        'requests',
        'urllib3',
        'xmltodict',
        'python-dotenv',
        'python-dateutil',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['pysmilep1=pysmilep1.__main__:main'],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
