import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    # Directory holding the client bundle (index.html, js, assets)
    STATIC_FOLDER = os.environ.get('STATIC_FOLDER', 'public')
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')
    # CPU surrogate timers (ms)
    CPU_TICK_INTERVAL_MS = int(os.environ.get('CPU_TICK_INTERVAL_MS', '5000'))
    CPU_REACTION_DELAY_MS = int(os.environ.get('CPU_REACTION_DELAY_MS', '2000'))
    # Optional: forfeit an at-bat nobody answers (sec). 0 disables.
    RESPONSE_TIMEOUT_SEC = int(os.environ.get('RESPONSE_TIMEOUT_SEC', '0'))
    # What to do with joiners beyond the two roles: 'spectate' or 'reject'
    EXTRA_PLAYER_POLICY = os.environ.get('EXTRA_PLAYER_POLICY', 'spectate')
