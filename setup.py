import re

from setuptools import find_packages, setup


with open("shaderpass/_version.py", "rb") as fh:
    init_text = fh.read().decode()
    VERSION = re.search(r"__version__ = \"(.*?)\"", init_text).group(1)


runtime_deps = [
    "numpy",
    "Jinja2",
    "imageio",
]

extras_require = {
    "dev": [
        "black",
        "flake8",
        "flake8-black",
        "pep8-naming",
        "pytest",
        "setuptools",
        "wheel",
        "twine",
    ],
    "docs": [
        "sphinx>7.2",
        "sphinx_rtd_theme",
        "numpy",
        "jinja2",
        "imageio",
    ],
}


setup(
    name="shaderpass",
    version=VERSION,
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "shaderpass.glsl": ["*.glsl"],
    },
    python_requires=">=3.9.0",
    install_requires=runtime_deps,
    extras_require=extras_require,
    license="BSD 2-Clause",
    description="A compilation pipeline for multipass fragment shaders",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    zip_safe=True,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Programming Language :: Python :: 3",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Multimedia :: Graphics",
    ],
)
