"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/surtur-build/surtur"
KEYWORDS = "c build-tool compiler toolchain gcc dependencies project-manager"
HERE = os.path.dirname(os.path.abspath(__file__))

with open(os.path.join(HERE, "src", "surtur", "__init__.py"), encoding="utf-8") as f:
    VERSION = f.read().split('__version__ = "', 1)[1].split('"', 1)[0]


if __name__ == "__main__":
    setup(
        name="surtur",
        version=VERSION,
        description="Build tool for C projects: dependencies, builds, runs and tests",
        keywords=KEYWORDS,
        url=URL,
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        python_requires=">=3.10",
        install_requires=[
            "requests",
            "tqdm",
            "urllib3",
        ],
        extras_require={
            "test": ["pytest"],
        },
        entry_points={
            "console_scripts": [
                "surtur=surtur.cli:main",
            ],
        },
        include_package_data=True)
