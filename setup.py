from setuptools import setup, find_packages

setup(
    name="focilchain",
    version="0.1.0",
    packages=find_packages(exclude=["tests"]),
    py_modules=["cli"],
    install_requires=[
        "pynacl>=1.5",
        "aiohttp>=3.9",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "focilchain=cli:main",
        ],
    },
    python_requires=">=3.8",
)
