"""
Passenger startup file
Loads .env, then serves the `application` object built in app.py
"""
import os
import traceback
import importlib.util

from dotenv import load_dotenv

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))

# Passenger does not load .env on its own
load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

startup_error = None

try:
    module_spec = importlib.util.spec_from_file_location("app", os.path.join(PROJECT_ROOT, "app.py"))
    app_module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(app_module)

    application = getattr(app_module, "application", None) or getattr(app_module, "app", None)
    if application is None:
        raise AttributeError("app.py defines neither 'application' nor 'app'")

except Exception as e:
    startup_error = f"{e}\n\n{traceback.format_exc()}"

if startup_error:
    def application(environ, start_response):
        start_response("500 Internal Server Error", [("Content-Type", "text/plain")])
        return [("JORDANMARKET STARTUP FAILED\n\n" + startup_error).encode("utf-8")]
