"""
Setup script for render-service project.

Allows development installation with `pip install -e .[test]`
"""

from setuptools import setup, find_packages

setup(
    name="render-service",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.115.3",
        "starlette>=0.40",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "python-multipart>=0.0.6",
        "playwright>=1.40",
        "markdown-it-py>=3.0",
        "mdit-py-plugins>=0.4",
        "linkify-it-py>=2.0",
        "pygments>=2.15",
        "httpx>=0.25",
        "uvicorn>=0.23",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "render-service=render_service.cli:main",
        ],
    },
)
