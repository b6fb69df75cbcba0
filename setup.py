from setuptools import setup, find_packages

setup(
    name="verify-input",
    version="0.1.0",
    description="Declarative field verification with ordered, short-circuit rule evaluation",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        'verify_input': ['local-config.yaml', 'forms/*.yaml'],
    },
    include_package_data=True,
    install_requires=[
        'pyyaml>=6.0',
        'jsonschema>=4.17.0',
        'requests>=2.28.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'verify-input-rpc=verify_input.jsonrpc_server:main',
        ],
    },
    python_requires='>=3.9',
)
