from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager

db = SQLAlchemy()   # Creating an instance of SQLAlchemy
bcrypt = Bcrypt()   # Creating an instance of Bcrypt
login_manager = LoginManager()
