from setuptools import setup, find_packages

setup(
    name='installctl',
    version='0.1.0',
    packages=find_packages(exclude=['*.tests', '*.tests.*']),
    include_package_data=True,
    package_data={
        'installctl': ['ansible/*.yaml'],
        'installctl.modules': ['templates/*.j2'],
    },
    install_requires=[
        'typer[all]',
        'rich',
        'fastapi',
        'uvicorn',
        'pydantic>=2',
        'jinja2',
        'pyyaml',
        'jsonschema',
        'ansible',
        'ansible-runner',
        'python-dotenv',
        'requests'
    ],
    extras_require={
        'test': [
            'pytest',
            'httpx',
        ]
    },
    entry_points={
        'console_scripts': [
            'installctl=installctl.cli:app'
        ]
    },
    author='Your Name',
    description='Control plane API and CLI for a self-hosted Kubernetes cluster installer',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
)
