# setup.py - Package graph_analogy
from setuptools import setup

setup(
    name="graph_analogy",
    version="0.1.0",
    description="Cross-domain structural analogy retrieval over knowledge graphs",
    packages=["graph_analogy"],
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "networkx",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
