from setuptools import setup, find_packages

setup(
    name="hubbot",
    version="0.3.0",
    description="hubbot - plugin host for chat automation bots",
    author="hubbot Team",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "typer>=0.16.0",
        "rich>=13.7.1",
        "GitPython>=3.1.43",
        "PyYAML>=6.0.2",
        "pydantic>=2.7",
        "python-dotenv>=1.0.1",
        "requests>=2.32",
        "watchdog>=4.0.1",
        "packaging>=24.0",
        "croniter>=2.0.5",
    ],
    extras_require={
        "test": [
            "pytest>=8.3.2",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "hubbot=hubbot.apps.cli.app:app",
        ],
    },
)
