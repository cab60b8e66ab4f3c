import logging

from flask import Flask, jsonify

from config import Config
from errors import Unauthenticated, register_error_handlers
from extensions import bcrypt, db, login_manager
from models import User
from routes import register_blueprints
from seed import seed_command


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    raise Unauthenticated()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    login_manager.init_app(app)

    register_blueprints(app)
    register_error_handlers(app)
    app.cli.add_command(seed_command)

    @app.route("/")  # Health check
    def start():
        return jsonify({"message": "Project tracker API running"})

    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
