from setuptools import setup, find_packages

setup(
    name = 'rtscope',
    version = '0.1.0',
    packages = find_packages(include = ["rtscope", "rtscope.*"]),
    author = "rtscope contributors",
    description = "Exploratory COVID-19 case and death analysis with real-time Bayesian estimates of Rt.",
    classifiers = [
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires = '>=3.8',
    install_requires = [
        "numpy",
        "pandas",
        "scipy",
        "statsmodels",
        "matplotlib",
        "seaborn",
        "geopandas",
        "requests",
        "tqdm",
    ],
    extras_require = {
        "test": ["pytest"]
    }
)
