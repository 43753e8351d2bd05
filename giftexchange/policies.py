from __future__ import annotations

from http import HTTPStatus

from flask import jsonify
from flask.views import MethodView
from flask_login import current_user


def is_admin_user() -> bool:
    return current_user.is_authenticated and current_user.is_admin


def current_user_id() -> int | None:
    return current_user.id if current_user.is_authenticated else None


def unauthorized_response():
    return jsonify(code="unauthorized", message="Sign in first."), HTTPStatus.UNAUTHORIZED


class LoginRequiredMixin(MethodView):
    def dispatch_request(self, *args, **kwargs):
        if not current_user.is_authenticated:
            return unauthorized_response()
        return super().dispatch_request(*args, **kwargs)


class AdminRequiredMixin(LoginRequiredMixin):
    def dispatch_request(self, *args, **kwargs):
        if current_user.is_authenticated and not is_admin_user():
            return jsonify(code="forbidden", message="Only the organizer can do this."), HTTPStatus.FORBIDDEN
        return super().dispatch_request(*args, **kwargs)
