from setuptools import setup, find_packages

package_name = 'gesture_lights'

setup(
    name=package_name,
    version='1.0.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.9',
    install_requires=[
        'setuptools',
        'fastapi>=0.104.0',
        'uvicorn>=0.24.0',
        'websockets>=12.0',
        'paho-mqtt>=2.0.0',
        'PyYAML>=6.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'httpx>=0.25.0',
        ],
    },
    zip_safe=True,
    description='Hand gesture control for networked lights',
    license='MIT',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'gesture-lights = gesture_lights.main:main',
        ],
    },
)
