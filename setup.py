import sys
from pathlib import Path

from setuptools import setup

if sys.version_info[0:2] < (3, 10):
    raise RuntimeError("This package requires Python 3.10+.")

setup(
    name="dynaqlio",
    use_scm_version={
        "version_scheme": "guess-next-dev",
        "local_scheme": "dirty-tag",
        "fallback_version": "0.1.0",
    },
    packages=[
        "dynaqlio",
        "dynaqlio.orm",
        "dynaqlio.orm.schema",
        # namespace packages yay
        "dynaqlio.backends",
        # postgres backend
        "dynaqlio.backends.postgresql",
        # mysql backend
        "dynaqlio.backends.mysql",
        # sqlite3 backend
        "dynaqlio.backends.sqlite3"
    ],
    license="MIT",
    description="An asyncio relational-mapping core with runtime schema discovery",
    long_description=Path(__file__).with_name("README.rst").read_text(encoding="utf-8"),
    setup_requires=[
        "setuptools_scm",
    ],
    install_requires=[
        "cached_property>=1.3.0",
        "inflect>=6.0",
        "aiosqlite>=0.17.0",
    ],
    extras_require={
        "docs": [
            "sphinx>=1.5.0",
            "sphinxcontrib-asyncio",
            "guzzle_sphinx_theme"
        ],
        "postgresql": [
            "asyncpg>=0.25.0"
        ],
        "mysql": [
            "aiomysql>=0.1.0",
            "PyMySQL>=1.0",
        ],
        "test": [
            "pytest",
            "pytest-asyncio>=0.21",
            "pytest-cov"
        ]
    },
    python_requires=">=3.10",
)
