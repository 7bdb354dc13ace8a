from setuptools import setup


setup(
    name="ta-monitor",
    version="0.3.0",
    description="Field technical-assistance monitoring dashboard fed by a published spreadsheet export",
    packages=["ta_monitor"],
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
        "requests",
        "anthropic",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "ta-monitor=ta_monitor.cli:main",
        ]
    },
)
