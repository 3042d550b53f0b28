from setuptools import setup, find_packages

setup(
    name='ketctl',
    version='0.1.0',
    packages=find_packages(),
    include_package_data=True,
    install_requires=[
        'typer[all]',
        'pyyaml',
        'pydantic>=2',
        'python-dotenv',
        'paramiko',
        'ansible',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'ketctl=ketctl.cli:app'
        ]
    },
    description='CLI to plan, validate and install Kubernetes clusters from a plan file',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
)
