# coding=utf-8
from setuptools import setup

test_requirements = [
    "pytest-asyncio>=0.21",
    "black>=19.10b0",
    "codecov>=2.1.4",
    "flake8>=3.8.3",
    "flake8-debugger>=3.2.1",
    "pytest>=5.4.3",
    "pytest-cov>=2.9.0",
    "pytest-raises>=0.11",
]

dev_requirements = [
    *test_requirements,
    "bump2version>=1.0.1",
    "coverage>=5.1",
    "ipython>=7.15.0",
    "tox>=3.15.2",
    "twine>=3.1.1",
    "wheel>=0.34.2",
]

requirements = ["webcolors>=24.6.0", 'typing_extensions;python_version<"3.8"']


extra_requirements = {
    "test": test_requirements,
    "dev": dev_requirements,
    "all": [
        *requirements,
        *dev_requirements,
    ],
}


setup(
    name="magichome_control",
    packages=["magichome_control"],
    version="0.1.0",
    description="A Python library to control Magic Home WiFi LED controllers",
    license="LGPLv3+",
    include_package_data=True,
    package_data={"magichome_control": ["py.typed"]},
    keywords=[
        "magichome",
        "ledenet",
        "led controller",
        "light",
    ],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Other Environment",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: "
        + "GNU Lesser General Public License v3 or later (LGPLv3+)",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Home Automation",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    entry_points={
        "console_scripts": ["magichome-control=magichome_control.__main__:main"]
    },
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require=extra_requirements,
    zip_safe=False,
)
