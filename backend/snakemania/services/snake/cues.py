from snakemania import socketio
from .engine import EVENT_EAT, EVENT_GAME_OVER

DEFAULT_EAT_SOUND_URL = 'https://cdn.pixabay.com/download/audio/2023/03/16/audio_b71d939ff4.mp3?filename=click-124467.mp3'
DEFAULT_GAME_OVER_SOUND_URL = 'https://cdn.pixabay.com/download/audio/2022/03/15/audio_9b6a444d0b.mp3?filename=error-126508.mp3'

CUE_VOLUMES = {
    EVENT_EAT: 0.3,
    EVENT_GAME_OVER: 0.8,
}


def cue_payload(app, cue: str) -> dict:
    urls = {
        EVENT_EAT: app.config.get('SNAKE_EAT_SOUND_URL') or DEFAULT_EAT_SOUND_URL,
        EVENT_GAME_OVER: app.config.get('SNAKE_GAME_OVER_SOUND_URL') or DEFAULT_GAME_OVER_SOUND_URL,
    }
    return {'cue': cue, 'url': urls[cue], 'volume': CUE_VOLUMES[cue]}


def play_cue(app, room: str, cue: str) -> None:
    """Push a sound cue to the browser. Best effort: failures are only logged."""
    if cue not in CUE_VOLUMES:
        return
    try:
        socketio.emit('sound', cue_payload(app, cue), to=room, namespace='/ws')
    except Exception as exc:
        try:
            app.logger.warning(f"[cue-failed] room={room} cue={cue}: {exc}")
        except Exception:
            pass
