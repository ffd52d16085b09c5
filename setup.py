from setuptools import setup

setup(
    name='collation-prep',
    version='1.0.0',
    package_dir={'': 'py'},
    py_modules=[
        'common',
        'collation_lexer',
        'diagnostics',
        'prep_config',
        'macro_registry',
        'testimony_model',
        'collation_interpreter',
        'witness_reducer',
        'stratifier',
        'collation_writer',
        'prep',
    ],
    description='Prepares hand-authored manuscript collations for stemmatic analysis: state matrices, chronological constraints and variant listings',
    license='MIT',
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'pandas',
        'lxml',
        'openpyxl'
    ],
    extras_require={
        'test': ['pytest>=7'],
    },
    entry_points={
        'console_scripts': [
            'prep = prep:main',
        ],
    },
	classifiers=[
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
    ]
)
