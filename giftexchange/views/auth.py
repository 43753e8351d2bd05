from __future__ import annotations

import logging
from http import HTTPStatus

from flask import Blueprint, jsonify, request
from flask.views import MethodView
from flask_login import login_user, logout_user, current_user
from flask_wtf.csrf import generate_csrf
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..policies import LoginRequiredMixin
from ..security import hash_client_key, verify_client_key

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _user_payload(user: User) -> dict:
    return {"id": user.id, "name": user.name, "department": user.department, "role": user.role}


def _error(message: str, status=HTTPStatus.UNPROCESSABLE_ENTITY):
    return jsonify(code="invalid_payload", message=message), status


def _json_object() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


class RegisterView(MethodView):
    def post(self):
        data = _json_object()
        name = str(data.get("name") or "").strip()
        department = str(data.get("department") or "").strip() or None
        client_hash = str(data.get("client_hash") or "").strip().lower()

        if not name:
            return _error("Name is required.")

        if not client_hash:
            return _error("Missing passphrase hash. Please refresh and try again.")

        if User.query.filter_by(name=name).first():
            return _error("That name is already registered.", HTTPStatus.CONFLICT)

        user = User(
            name=name,
            department=department,
            passkey_hash=hash_client_key(client_hash),
        )
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return _error("That name is already registered.", HTTPStatus.CONFLICT)

        logger.info("Account %s created", user.id)
        return jsonify(_user_payload(user)), HTTPStatus.CREATED


class LoginView(MethodView):
    def post(self):
        data = _json_object()
        name = str(data.get("name") or "").strip()
        client_hash = str(data.get("client_hash") or "").strip().lower()

        if not name:
            return _error("Name is required.")

        user = User.query.filter_by(name=name).first()
        if not user or not client_hash or not verify_client_key(client_hash, user.passkey_hash):
            return jsonify(code="unauthorized", message="Invalid name or passphrase."), HTTPStatus.UNAUTHORIZED

        login_user(user)
        return jsonify(_user_payload(user))


class LogoutView(MethodView):
    def post(self):
        if current_user.is_authenticated:
            logout_user()
        return "", HTTPStatus.NO_CONTENT


class MeView(LoginRequiredMixin):
    def get(self):
        return jsonify(_user_payload(current_user))


class CsrfTokenView(MethodView):
    def get(self):
        return jsonify(csrf_token=generate_csrf())


auth_bp.add_url_rule("/register", view_func=RegisterView.as_view("register"), methods=["POST"])
auth_bp.add_url_rule("/login", view_func=LoginView.as_view("login"), methods=["POST"])
auth_bp.add_url_rule("/logout", view_func=LogoutView.as_view("logout"), methods=["POST"])
auth_bp.add_url_rule("/me", view_func=MeView.as_view("me"), methods=["GET"])
auth_bp.add_url_rule("/csrf-token", view_func=CsrfTokenView.as_view("csrf_token"), methods=["GET"])
