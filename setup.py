from setuptools import setup, find_packages

setup(
    name="stackshare",
    version="0.1.0",
    packages=find_packages(exclude=["stackshare.tests"]),
    py_modules=["cli"],
    install_requires=[
        "boto3",
        "botocore",
        "PyYAML",
    ],
    extras_require={
        "test": [
            "pytest",
            "moto[s3]>=5",
        ],
    },
    entry_points={
        'console_scripts': [
            'stackshare=cli:main',
        ],
    },
    description="Share a deployed Serverless service as a one-click CloudFormation link",
    python_requires='>=3.8',
)
