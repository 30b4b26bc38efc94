from setuptools import find_packages, setup


setup(
    name="spatial_richness",
    version="1.0.0",
    description="Species-richness estimation under spatial grid aggregation",
    packages=find_packages(include=["spatial_richness", "spatial_richness.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "numba",
        "scipy",
        "pandas",
        "joblib",
        "tqdm",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
