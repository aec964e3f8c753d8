from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="mywealth-tracker",
    version="1.0.0",
    author="My Wealth Team",
    author_email="support@mywealth.local",
    description="My Wealth personal finance tracker API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    py_modules=[
        'activity',
        'activity_logger',
        'analytics',
        'app',
        'auth',
        'auth_routes',
        'budgets',
        'build',
        'categories',
        'commands',
        'config',
        'errors',
        'extensions',
        'gunicorn_config',
        'health',
        'logging_config',
        'mail',
        'models',
        'quotes',
        'reports',
        'security',
        'stocks',
        'transactions',
        'user_routes',
        'validations',
        'wsgi',
    ],
    include_package_data=True,
    install_requires=[
        'Flask>=2.3',
        'Flask-SQLAlchemy>=3.0',
        'Flask-WTF>=1.2',
        'python-dotenv>=1.0',
        'SQLAlchemy>=2.0',
        'WTForms>=3.0',
        'Werkzeug>=2.3',
        'email-validator>=2.0',  # Needed by the WTForms Email validator
        'gunicorn>=21.2',
        'psycopg2-binary>=2.9',
        'bcrypt>=4.0',
        'python-jose>=3.3',
        'requests>=2.31',
    ],
    extras_require={
        'test': [
            'pytest>=7.4',
        ],
    },
    python_requires='>=3.9',
    classifiers=[
        "Programming Language :: Python :: 3",
        "Framework :: Flask",
        "Operating System :: OS Independent",
    ],
    entry_points={
        'console_scripts': [
            'mywealth=wsgi:main',
        ],
    },
)
