from setuptools import find_packages, setup

setup(
    name="awktalk",
    version="0.1.0",
    description="Live two-party conversation coach: speaker-attributed transcript with periodic next-line suggestions from an LLM",
    author="AwkTalk",
    packages=find_packages(include=["awktalk", "awktalk.*"]),
    install_requires=[
        "fastapi",
        "uvicorn",
        "websockets",
        "numpy",
        "pydantic>=2",
        "pydantic-settings",
        "python-dotenv",
        "langchain-core",
        "langchain-openai",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "awktalk-server=awktalk.awktalk_server:main",
        ],
    },
    python_requires=">=3.9",
)
