from setuptools import setup, find_packages

setup(
    name="refined-contracts",
    version="0.1.0",
    description="Static verification of refinement contracts with an SMT solver",
    packages=find_packages(include=["refined", "refined.*"]),
    python_requires=">=3.10",
    install_requires=[
        "z3-solver>=4.12.0",
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis",
        ],
    },
    entry_points={
        "console_scripts": [
            "refined=refined.cli:main",
        ],
    },
)
