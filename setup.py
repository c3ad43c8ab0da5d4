from setuptools import find_packages, setup

setup(
    name="cix-remote",
    version="0.2.0",
    description="Remote file access over a binary-framed request/response protocol",
    author="Daniel T Sasser II",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[],
    entry_points={
        "console_scripts": [
            "cix=cix.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "dev": [
            "pytest",
            "build",
            "twine",
        ],
    },
)
