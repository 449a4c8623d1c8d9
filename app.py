"""
JordanMarket WSGI entry point

Builds the Flask application with the config class selected by ENV.
passenger_wsgi.py loads this module and serves `application`; running it
directly starts the development server.
"""
import os
import sys
import traceback

BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))

# Passenger may start the process from another working directory
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

try:
    os.chdir(BACKEND_DIR)
except OSError:
    pass

app = None
application = None

try:
    from config import config_by_name, Config
    from jordanmarket import create_app

    config_class = config_by_name.get(os.environ.get('ENV', 'production'), Config)
    app = create_app(config_class)
    application = app

except Exception as e:
    startup_error = f"Failed to create JordanMarket application: {e}\n\n{traceback.format_exc()}"
    print(startup_error, file=sys.stderr)

    def error_application(environ, start_response):
        start_response('500 Internal Server Error', [('Content-Type', 'text/plain')])
        return [startup_error.encode('utf-8')]

    application = error_application
    app = error_application

# Only for local development (ignored by Passenger)
if __name__ == "__main__":
    if app and hasattr(app, 'run'):
        app.run(
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", 5000)),
            debug=os.environ.get("DEBUG", "False") == "True"
        )
    else:
        print("Error: Flask application could not be initialized", file=sys.stderr)
        sys.exit(1)
