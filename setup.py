from setuptools import find_packages, setup

setup(
    name="testreq",
    version="0.1.0",
    description="Fluent request builders and response decoders for testing WSGI apps",
    license="Apache-2.0",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "werkzeug >= 2.3",
        "typing_extensions >= 4.10",
    ],
    extras_require={
        "test": [
            "pytest >= 7",
            "flask >= 3",
        ],
    },
)
