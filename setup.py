from setuptools import setup, find_namespace_packages

setup(
    name="reading_catalog",
    version="0.1.0",
    packages=find_namespace_packages(include=['cli*', 'catalog*']),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "Click",
        "SQLAlchemy>=2.0",
        "requests",
        "python-dateutil",
        "pydantic>=2",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "reading-catalog=cli.main:main",
        ],
    },
)
