from setuptools import setup, find_packages

setup(
    name="pool-staking",
    version="0.1.0",
    packages=find_packages(include=["pool_staking", "pool_staking.*"]),
    include_package_data=True,
    install_requires=[
        "PyYAML>=6.0.1",
        "loguru>=0.7.0",
        "pydantic>=2.0.0",
        "Click>=8.0"
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "pool-staking=pool_staking.main:cli",
        ],
    },
    python_requires=">=3.9",
    author="Pool Staking Team",
    description="Staking ledger with fixed-rate pools and two-phase withdrawals",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Office/Business :: Financial :: Accounting",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
    ],
)
