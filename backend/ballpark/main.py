import os

from flask import Blueprint, current_app, jsonify, send_from_directory

from ballpark.game import get_game

main = Blueprint('main', __name__)


@main.route('/')
def index():
    static_folder = current_app.static_folder
    if static_folder and os.path.isfile(os.path.join(static_folder, 'index.html')):
        return send_from_directory(static_folder, 'index.html')
    return jsonify({'message': 'Welcome to the Ballpark game server!'})


@main.route('/api/state')
def game_state():
    game = get_game()
    payload = game.snapshot()
    payload['isCPUPlaying'] = game.state.is_cpu_playing
    payload['players'] = game.roster()
    return jsonify(payload)
