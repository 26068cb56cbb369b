from setuptools import setup, find_packages

setup(
    name="critique-engine",
    version="0.1.0",
    description="Progressive multi-worker text critique with live suggestion anchoring",
    author="Your Name",
    packages=find_packages(include=["critique", "critique.*"]),
    include_package_data=True,
    install_requires=[
        # Core data modeling and validation
        "pydantic>=2.0.0",

        # Environment variables
        "python-dotenv>=1.0.0",

        # Edit-distance similarity for fuzzy re-anchoring
        "rapidfuzz>=3.0.0",

        # CLI and rich output
        "typer>=0.9.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "critique = critique.app.cli:main",
        ],
    },
    python_requires=">=3.11",
    package_dir={"": "."},
)
