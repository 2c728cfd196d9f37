"""setup.py

This file is for packaging `channel-sizer` for distribution as a package using
`setuptools`.

References:

* https://packaging.python.org/en/latest/guides/distributing-packages-using-setuptools/#

"""

from setuptools import setup, find_packages
import pathlib

HERE = pathlib.Path(__file__).parent.resolve()

setup(
    name='channel-sizer',
    version='0.1.0',
    description="Rational Method peak flow and Manning's equation channel sizing, one channel or a spreadsheet at a time",
    long_description=(HERE / "README.md").read_text(encoding="utf-8"),
    long_description_content_type="text/markdown",
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Programming Language :: Python :: 3',
        'Private :: Do Not Upload'
    ],
    package_dir={"":"src"},
    packages=find_packages(where="src"),  # Required
    python_requires=">=3.9, <4",
    install_requires=[
        "codetiming",
        "pint",
        "click",
        "tqdm",
        "petl",
        "openpyxl",
        "chardet",
        "numpy",
        "marshmallow",
        "marshmallow-dataclass",
    ],
    extras_require={
        "test": ["pytest"],
    },
    package_data={
        'channelsizer':[
            'data/*.json',
        ]
    },
    entry_points='''
        [console_scripts]
        channelsizer=channelsizer.cli:cli
    ''',
)
