"""
Nyx Confidential Balances Setup
"""

from pathlib import Path

from setuptools import setup, find_packages

readme = Path(__file__).parent / "README.md"
long_description = readme.read_text(encoding="utf-8") if readme.exists() else ""

setup(
    name="nyx-privacy",
    version="0.1.0",
    author="Nyx Privacy Team",
    description="Confidential balances: ElGamal, Pedersen commitments, stealth addresses, viewing keys",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyNaCl>=1.5.0",
        "cryptography>=41.0.0",
        "base58>=2.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-timeout>=2.2.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Security :: Cryptography",
    ],
    keywords="privacy elgamal pedersen stealth-address viewing-key ed25519",
)
