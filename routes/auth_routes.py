import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required, login_user, logout_user

from authorization import current_actor
from enums import UserRole
from errors import ValidationFailed
from extensions import bcrypt, db
from models import User
from resources import user_resource
from services import unit_of_work
from validation import validate_registration

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.route("/register", methods=["POST"])   # This function is used to register a new user
def register():
    fields = validate_registration(request.get_json(silent=True))

    # --- HASH PASSWORD ---
    hashed_password = bcrypt.generate_password_hash(fields["password"]).decode("utf-8")

    # --- CREATE USER ---
    new_user = User(
        name=fields["name"],
        email=fields["email"],
        password=hashed_password,
        role=UserRole.USER,
    )
    with unit_of_work("user register"):
        db.session.add(new_user)
    logger.info("Registered user %s", new_user.id)

    return jsonify(user_resource(new_user)), 201


@auth_bp.route("/login", methods=["POST"])   # This function is used to start a session
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    email = data.get("email")
    password = data.get("password")

    # Basic validation
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValidationFailed({"email": "Please fill in all fields."})
    email = email.strip()
    if not email or not password:
        raise ValidationFailed({"email": "Please fill in all fields."})

    user = User.query.filter_by(email=email).first()

    if user and bcrypt.check_password_hash(user.password, password):
        login_user(user)
        return jsonify(user_resource(user))

    raise ValidationFailed({"email": "Invalid email or password."})


@auth_bp.route("/logout", methods=["POST"])   # This function is used to logout the current user
@login_required
def logout():
    logout_user()
    return jsonify({"message": "You have successfully logged out."})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify(user_resource(current_actor()))
