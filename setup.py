from setuptools import setup, find_packages

setup(
    name='account-closer',
    version='1.0.0',
    packages=find_packages(include=['account_closer', 'account_closer.*']),
    py_modules=['main'],
    install_requires=[
        'click',
        'pydantic>=2',
        'python-dateutil',
        'python-dotenv',
        'pyyaml',
    ],
    extras_require={
        'dev': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'account-closer=account_closer.cli:main',
        ],
    },
)
