from routes.auth_routes import auth_bp
from routes.dashboard_routes import dashboard_bp
from routes.project_routes import projects_bp
from routes.task_routes import tasks_bp
from routes.option_routes import options_bp


def register_blueprints(app):
    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(options_bp)
