from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="queue-depth-worker",
    version="0.1.0",
    description="Queue worker that exports a jobs-in-queue gauge for custom-metric autoscaling",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["run_worker"],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        "boto3>=1.26.0",
        "botocore>=1.29.0",
        "retry>=0.9.2",
        "google-cloud-pubsub>=2.13.0",
        "prometheus-client>=0.16.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "job-worker=job_worker.main:cli",
            "job-publisher=job_worker.publisher:cli",
        ],
    },
)
