from setuptools import setup

setup(
    name = 'rplidarx',
    packages = ['rplidarx'],
    version = '0.1.0',
    description = 'Module for working with RoboPeak RPLidar laser scanners.',
    license='MIT',
    python_requires='>=3.8',
    install_requires=['numpy', 'pyserial>=3.4'],
    extras_require={'test': ['pytest']},
    zip_safe=True,
    long_description='This module aims to implement host side of the '
        'communication protocol with RoboPeak RPLidar laser rangefinder '
        'scanners connected over serial port: health and information '
        'requests, reset, motor control and decoding of the standard scan '
        'data stream. It is built on asyncio and requires Python 3.8+.',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Framework :: AsyncIO',
        'Intended Audience :: Developers',
        'Intended Audience :: Education',
        'License :: OSI Approved :: MIT License',
        'Operating System :: Microsoft',
        'Operating System :: POSIX',
        'Operating System :: Unix',
        'Programming Language :: Python :: 3',
        'Topic :: System :: Hardware',
    ],
)
