import logging

from resumesync import create_app

app = create_app()
app.logger.setLevel(logging.INFO)

# Gunicorn entrypoint: `gunicorn --chdir backend wsgi:app`
if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5001, debug=False)
