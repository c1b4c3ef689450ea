from setuptools import setup, find_packages  # type: ignore


def get_version() -> str:
    with open('bsvlib/__init__.py', 'r') as f:
        for line in f:
            if line.startswith('__version__'):
                return line.strip().split('= ')[-1].strip("'")

    raise RuntimeError('__version__ not found')


setup(
    name='bsv-lib',
    version=get_version(),
    description='Bitcoin SV transactions, scripts and script interpreter',
    long_description=open('README.md', 'r').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests']),
    license='MIT',
    keywords=[
        'bitcoin',
        'bsv',
        'blockchain',
        'script',
        'library'
    ],
    install_requires=[
        'base58check~=1.0.2',
        'ecdsa~=0.19.0'
    ],
    extras_require={
        'test': ['pytest']
    },
    python_requires='>=3.12'
)
