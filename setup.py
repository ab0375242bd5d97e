# setup.py
from setuptools import setup, find_packages

setup(
    name="source_scout",
    version="0.1.0",
    description="SourceScout: определение источников данных веб-страницы через браузер",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.2",
        "lxml>=4.9",
        "playwright>=1.40",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "source-scout=source_scout.cli:main",
        ],
    },
    python_requires=">=3.11",
)
