from flask import jsonify
from werkzeug.exceptions import HTTPException


class TrackerError(Exception):
    status_code = 400
    message = "Request failed."

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {"message": self.message}


class ValidationFailed(TrackerError):
    status_code = 422
    message = "The given data was invalid."

    def __init__(self, errors, message=None):
        super().__init__(message)
        self.errors = errors

    def to_dict(self):
        return {"message": self.message, "errors": self.errors}


class Forbidden(TrackerError):
    status_code = 403
    message = "This action is unauthorized."


class NotFound(TrackerError):
    status_code = 404
    message = "Resource not found."


class Unauthenticated(TrackerError):
    status_code = 401
    message = "Unauthenticated."


def register_error_handlers(app):
    @app.errorhandler(TrackerError)
    def handle_tracker_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"message": e.description}), e.code

    @app.errorhandler(500)
    def server_error(e):
        app.logger.exception("Unhandled error: %s", e)
        return jsonify({"message": "Internal server error."}), 500
