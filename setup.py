from setuptools import find_packages, setup

README = ""
CHANGES = ""

requires = [
    "fastapi",
    "starlette",
    "uvicorn",
    "anyio",
    "jinja2",
    "itsdangerous",
    "python-multipart",
    "vtjson",
]

tests_require = [
    "httpx",
]

setup(
    name="meadowlark",
    version="0.1",
    description="Meadowlark Travel website",
    long_description=README + "\n\n" + CHANGES,
    classifiers=[
        "Programming Language :: Python",
        "Framework :: FastAPI",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    ],
    author="",
    author_email="",
    url="",
    keywords="web fastapi starlette jinja2",
    packages=find_packages(exclude=["tests"]),
    package_data={
        "meadowlark": [
            "templates/*.j2",
            "templates/*/*.j2",
            "static/*/*",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.12",
    install_requires=requires,
    extras_require={"test": tests_require},
    entry_points={
        "console_scripts": [
            "meadowlark = meadowlark.app:main",
        ],
    },
)
