from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the voxel rooms server!'})

@main.route('/api/health')
def health_check():
    store = current_app.extensions['room_store']
    return jsonify({'status': 'ok', 'rooms': len(store)})
