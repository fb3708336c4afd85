from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the estimation room server!'})


@main.route('/health')
def health():
    engine = current_app.extensions['estimation']
    return jsonify({'status': 'ok', 'rooms': len(engine.store)})
