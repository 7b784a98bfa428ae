import re

import setuptools


with open('README.md', 'r') as fh:
    long_description = fh.read()

with open('requirements.txt', 'r') as fh:
    requirements = fh.read().splitlines()

with open('dmsopt/__init__.py', 'r') as fh:
    __version__ = re.search(r"__version__ = '([^']+)'", fh.read()).group(1)

if __name__ == '__main__':
    setuptools.setup(
        name='dmsopt',
        version=__version__,
        description="Direct multiple shooting and linear-quadratic optimal "
                    "control solvers",
        long_description=long_description,
        long_description_content_type='text/markdown',
        packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
        python_requires='>=3.8',
        install_requires=requirements,
        extras_require={'test': ['pytest']})
