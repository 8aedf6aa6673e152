from pathlib import Path

from setuptools import find_packages, setup

README = Path("README.md")

setup(
    name="gstbill",
    version="1.0.0",
    description="GST billing and inventory for pharmaceutical distributors",
    long_description=README.read_text(encoding="utf-8") if README.exists() else "",
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.10",
    install_requires=[
        "lxml>=4.9",
        "openpyxl>=3.1",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "gstbill=gstbill.cli:main",
        ],
    },
)
