"""Republish a deployed Serverless bundle to a public S3 bucket."""

__version__ = "0.1.0"
