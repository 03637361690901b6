from setuptools import setup, find_packages

setup(
    name="workout_timeline",
    version="1.0.0",
    packages=find_packages(include=["workout_timeline", "workout_timeline.*"]),
    install_requires=[
        "pandas>=2.0.0",
        "numpy>=1.24.0",
        "matplotlib>=3.7.0",
        "seaborn>=0.13.0",
        "plotly>=5.15.0",
        "pyarrow>=10.0.0",
        "openpyxl>=3.1.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "workout-timeline=workout_timeline.cli:main",
        ],
    },
    python_requires=">=3.8",
)
