"""
Template routes - read, author and resolve checklist templates.
"""
from flask import Blueprint, abort, current_app, jsonify, request

from servfix.checklist import TemplateError
from servfix.services import template_store

templates_bp = Blueprint('templates', __name__, url_prefix='/templates')


@templates_bp.route('/')
def list_templates():
    templates = template_store.get_templates()
    return jsonify([{'id': t.id, 'name': t.name} for t in templates])


@templates_bp.route('/resolve')
def resolve_template():
    """Template for ?type=&name=, with the fallback warning if any."""
    template, warning = template_store.resolve(request.args.get('type'), request.args.get('name'))
    return jsonify({'template': template.to_json(), 'warning': warning})


@templates_bp.route('/<template_id>')
def get_template(template_id):
    template = template_store.get_template(template_id)
    if template is None:
        abort(404)
    return jsonify(template.to_json())


@templates_bp.route('/<template_id>', methods=['PUT'])
def put_template(template_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400
    data = {**data, 'id': template_id}

    try:
        template = template_store.save_template(data, user_name=request.headers.get('X-User-Name'))
    except TemplateError as e:
        current_app.logger.warning("Rejected template %s: %s", template_id, e)
        return jsonify({'error': str(e), 'problems': e.problems}), 422
    return jsonify(template.to_json())
