"""
awsimporter - adopts pre-existing AWS resources into Crossplane compositions.

Finds the external resource matching each desired composed resource through
the AWS Resource Groups Tagging API and writes its external name back onto
the desired resource.
"""

__version__ = "0.1.0"
