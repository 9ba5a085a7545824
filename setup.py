from setuptools import setup

with open('README.rst') as f:
    readme = f.read()

setup(
    name='adb_host',
    version='0.1.0',
    description='A Python client for the ADB host protocol, with shell, FileSync, and port forwarding functionality.',
    long_description=readme,
    keywords=['adb', 'android'],
    url='https://github.com/JeffLIrion/adb_host',
    author='Jeff Irion',
    author_email='jefflirion@users.noreply.github.com',
    packages=['adb_host', 'adb_host.connection'],
    install_requires=[],
    python_requires='>=3.6',
    classifiers=['Operating System :: OS Independent',
                 'License :: OSI Approved :: Apache Software License',
                 'Programming Language :: Python :: 3'],
    test_suite='tests'
)
