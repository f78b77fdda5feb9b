from setuptools import setup, find_packages

long_description = """
Twisted-based asynchronous client for Amazon S3 style object storage using
the original HMAC-SHA1 request signing scheme.  It signs requests with an
Authorization header or renders time-limited query-string authenticated URLs,
and decodes listing responses with a streaming XML decoder.
"""


setup(
    name="txS3",
    version="0.1.0",
    description="Async client for S3 style object storage",
    author="txS3 Developers",
    license="MIT",
    packages=find_packages(),
    long_description=long_description,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Framework :: Twisted",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Internet :: WWW/HTTP",
        "License :: OSI Approved :: MIT License",
       ],
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.8",
    install_requires=[
        "attrs>=19.2.0", "python-dateutil", "twisted[tls]>=18.7.0", "lxml",
        "incremental", "pyrsistent", "constantly", "zope.interface",
    ],
    extras_require={
        "dev": ["pytest"],
    },
    )
