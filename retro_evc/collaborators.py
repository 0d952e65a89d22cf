"""Playlist and crawler content for the display's /api/init call."""

import logging
from pathlib import Path
from typing import List, Union

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {".mp3", ".ogg", ".wav", ".m4a", ".flac"}


def generate_playlist(music_dir: Union[str, Path]) -> List[str]:
    """Audio files in the music folder, sorted by name."""
    folder = Path(music_dir)
    if not folder.is_dir():
        logger.warning(f"Music folder {folder} not found, playlist is empty")
        return []

    files = sorted(
        p.name for p in folder.iterdir()
        if p.is_file() and p.suffix.lower() in AUDIO_EXTENSIONS
    )
    logger.info(f"Generated playlist with {len(files)} files")
    return files


def generate_crawler(path: Union[str, Path]) -> List[str]:
    """Crawler messages, one per non-empty line."""
    crawler_file = Path(path)
    if not crawler_file.is_file():
        logger.warning(f"Crawler file {crawler_file} not found, no crawler messages")
        return []

    messages = [
        line.strip() for line in crawler_file.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]
    logger.info(f"Generated crawler with {len(messages)} messages")
    return messages
