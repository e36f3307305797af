from setuptools import setup, find_packages

setup(
    name='gaia_semsearch',
    version='0.1.0',
    packages=find_packages(include=['gaia_semsearch', 'gaia_semsearch.*']),
    include_package_data=True,
    install_requires=[
        'httpx>=0.25',
        'pydantic>=2.0',
        'pydantic-settings>=2.0',
        'PyYAML>=6.0',
    ],
    extras_require={
        'dev': [
            'pytest>=7.0',
            'pytest-asyncio>=0.21',
        ],
    },
    entry_points={
        'console_scripts': [
            'gaia-semsearch=gaia_semsearch.main:main',
        ],
    },
    python_requires='>=3.11',
    description='Semantic-search index lifecycle manager for the GAIA dev container.',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    author='GAIA Team',
    author_email='gaia-team@example.com',
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX :: Linux',
    ],
)
