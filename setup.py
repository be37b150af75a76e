from setuptools import setup, find_packages

setup(
    name="proofanchor",
    version="0.1.0",
    description="zkTLS transparency attestations for internet domains",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=["pynacl>=1.5.0", "httpx>=0.24.0"],
    extras_require={"dev": ["pytest>=7.0", "pytest-asyncio>=0.21", "respx>=0.20"]},
    entry_points={"console_scripts": ["proofanchor=proofanchor.cli:main"]},
    python_requires=">=3.11",
    license="CC0-1.0",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Security :: Cryptography",
        "Topic :: Internet :: WWW/HTTP",
        "License :: CC0 1.0 Universal (CC0 1.0) Public Domain Dedication",
        "Programming Language :: Python :: 3",
    ],
    keywords="zero-knowledge tls attestation transparency noir",
)
