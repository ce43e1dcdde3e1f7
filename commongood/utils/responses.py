"""Success envelope shared by all API routes."""

from flask import jsonify


def success(data=None, status_code=200, **extra):
    """Build ``{'status': 'success', ..., 'data': data}`` with extra top-level keys."""
    body = {'status': 'success'}
    body.update(extra)
    body['data'] = data
    return jsonify(body), status_code


def no_content():
    return '', 204
