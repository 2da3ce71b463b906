from setuptools import find_packages, setup

setup(
    name="pixeltree",
    version="0.1.0",
    description="Ping still images and animations onto an IPv6 pixel tree display",
    author="Garrett Johnson",
    packages=find_packages(include=["pixeltree", "pixeltree.*"]),
    python_requires=">=3.11",
    install_requires=[
        "numpy>=1.23.0",
        "Pillow>=9.2.0",
    ],
    extras_require={
        "test": ["pytest", "pytest-asyncio"],
    },
    entry_points={
        "console_scripts": ["pixeltree=pixeltree.main:main"],
    },
)
