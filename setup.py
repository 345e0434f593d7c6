import re

import setuptools

# Read the version without importing the package (its dependencies may not be installed yet)
with open("pyopendtu/__init__.py", "r") as fh:
    __version__ = '.'.join(re.search(r"version_tuple = \((\d+), (\d+), (\d+)\)", fh.read()).groups())

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="pyopendtu",
    version=__version__,
    author="pyopendtu",
    description="Python module to read OpenDTU solar inverter data and render a cached status widget",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url='https://github.com/tbnobody/OpenDTU',
    packages=setuptools.find_packages(include=['pyopendtu', 'pyopendtu.*']),
    install_requires=[
        'requests',
        'python-dotenv',
        'python-dateutil',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['pyopendtu=pyopendtu.__main__:main'],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
