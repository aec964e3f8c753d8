import os

from app import create_app

app = create_app()


def main():
    """Run the development server (production uses gunicorn -c gunicorn_config.py wsgi:app)"""
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=app.config['DEBUG'])


if __name__ == '__main__':
    main()
