import logging
import os

from flask import Flask, send_from_directory

from config import Config
from utils.db import init_db_connection
from utils.errors import register_error_handlers
from utils.geocode import geocoder_from_config

# Import controllers
from controllers.student_logs_controller import student_logs_bp
from controllers.logs_controller import logs_bp
from controllers.interns_controller import interns_bp
from controllers.stats_controller import stats_bp
from controllers.reports_controller import reports_bp


def create_app(config_object=Config):
    app = Flask(__name__)               # Initialize Flask app
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    init_db_connection(app)             # Initialize MongoDB connection
    register_error_handlers(app)

    geocoder = geocoder_from_config(app.config)
    if geocoder is not None:
        app.extensions["reverse_geocoder"] = geocoder

    # Register Blueprint
    app.register_blueprint(student_logs_bp)
    app.register_blueprint(logs_bp)
    app.register_blueprint(interns_bp)
    app.register_blueprint(stats_bp)
    app.register_blueprint(reports_bp)

    @app.route("/uploads/<path:image_id>")
    def uploaded_image(image_id):
        return send_from_directory(app.config["UPLOAD_FOLDER"], image_id)

    @app.route("/health")
    def health():
        return {"status": "ok"}

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)
    return app


# Run the app
if __name__ == "__main__":
    create_app().run(debug=True)
