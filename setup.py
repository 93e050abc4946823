from setuptools import setup, find_packages

setup(
    name="llm-structure-relay",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "fastapi>=0.110",
        "starlette",
        "uvicorn>=0.27",
        "httpx>=0.27",
        "pydantic>=2.5",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "structlog>=24.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "pytest-httpx>=0.30",
        ],
    },
    entry_points={
        "console_scripts": [
            "structure-relay=structure_relay.core.cli:main",
        ],
    },
    description="Relay that turns document text into structured output via local or hosted LLMs.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Framework :: FastAPI",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
