"""
Setup script for the Voice Agent.
"""

from setuptools import find_packages
from setuptools import setup

setup(
    name="voice-agent",
    version="1.0.0",
    description="Hands-free voice conversation agent with silence endpointing and remote/local TTS",
    author="AI Team",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "fastapi>=0.104.1",
        "uvicorn[standard]>=0.24.0",
        "websockets>=12.0",
        "pydantic>=2.8.0",
        "pyyaml>=6.0.1",
        "python-dotenv>=1.0.0",
        "requests>=2.31.0",
        "urllib3>=2.0.0",
        "platformdirs>=4.0.0",
    ],
    extras_require={
        "voice": [
            "piper-tts>=1.3.0",
            "vosk>=0.3.45",
        ],
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.25.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "voice-agent=voice_agent.run_app:main",
        ],
    },
)
