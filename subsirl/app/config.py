from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from subsirl.languages import LANGUAGE_OPTIONS

DEFAULTS: dict[str, Any] = {
    "list_devices": False,
    "device": None,
    "sr": 16000,
    "channels": 1,
    "frame_samples": 1536,
    "vad": "silero",
    "rms_th": 250.0,
    "positive_threshold": 0.9,
    "negative_threshold": 0.1,
    "debounce_frames": 1,
    "redemption_frames": 3,
    "pre_roll_frames": 5,
    "min_speech_frames": 2,
    "max_segment_frames": None,
    "source_language": "hi",
    "target_language": "en",
    "api_base_url": "https://api.groq.com/openai/v1",
    "api_key_env": "GROQ_API_KEY",
    "recognition_model": "whisper-large-v3",
    "translation_model": "llama3-70b-8192",
    "translator": "llm",
    "stage_timeout_sec": 30.0,
    "max_concurrency": 4,
    "font_size": 28,
    "poll_ms": 60,
    "max_updates_per_tick": 20,
    "print_console": True,
    "headless": False,
    "input_wav": None,
    "debug": False,
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())
LANGUAGE_CODES: tuple[str, ...] = tuple(lang.code for lang in LANGUAGE_OPTIONS)


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def default_asset_config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "assets" / "config" / "default.json"


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("subsirl", "subsirl"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in CONFIG_KEYS:
        if key in payload:
            out[key] = payload[key]
    return out


def load_default_config() -> dict[str, Any]:
    path = default_asset_config_path()
    if not path.exists():
        return copy.deepcopy(DEFAULTS)
    loaded = _load_json_dict(path)
    out = copy.deepcopy(DEFAULTS)
    for key in DEFAULTS.keys():
        if key in loaded:
            out[key] = loaded[key]
    return out


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    defaults = load_default_config()
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists(defaults)
    loaded = _known_only(_load_json_dict(chosen))
    merged = dict(defaults)
    merged.update(loaded)
    return merged, chosen


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if paths.config_path.exists():
        return paths.config_path
    _write_json_dict(paths.config_path, defaults or load_default_config())
    return paths.config_path


def resolve_defaults(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    return load_user_config(config_path=config_path)


def _optional_int(value: str) -> int | None:
    if str(value).strip().lower() in ("", "none", "default"):
        return None
    return int(value)


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="subsirl", description="Live translated subtitles from the microphone.")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--list-devices", action="store_true", help="print audio devices and exit")
    p.add_argument("--device", type=_optional_int, default=defaults["device"], help="sounddevice input device id")
    p.add_argument("--sr", type=int, default=defaults["sr"], help="sample rate (Hz)")
    p.add_argument("--channels", type=int, default=defaults["channels"], help="input channels")
    p.add_argument("--frame-samples", type=int, default=defaults["frame_samples"], help="samples per VAD frame")
    p.add_argument(
        "--vad",
        default=defaults["vad"],
        choices=["silero", "webrtc", "energy"],
        help="speech detector",
    )
    p.add_argument("--rms-th", type=float, default=defaults["rms_th"], help="RMS threshold for the energy detector")
    p.add_argument(
        "--positive-threshold",
        type=float,
        default=defaults["positive_threshold"],
        help="speech score that starts a segment",
    )
    p.add_argument(
        "--negative-threshold",
        type=float,
        default=defaults["negative_threshold"],
        help="speech score below which a frame counts towards closing a segment",
    )
    p.add_argument(
        "--debounce-frames",
        type=int,
        default=defaults["debounce_frames"],
        help="consecutive speech frames needed to start a segment",
    )
    p.add_argument(
        "--redemption-frames",
        type=int,
        default=defaults["redemption_frames"],
        help="consecutive non-speech frames that close a segment",
    )
    p.add_argument(
        "--pre-roll-frames",
        type=int,
        default=defaults["pre_roll_frames"],
        help="frames kept from before speech start",
    )
    p.add_argument(
        "--min-speech-frames",
        type=int,
        default=defaults["min_speech_frames"],
        help="discard segments with fewer speech frames than this",
    )
    p.add_argument(
        "--max-segment-frames",
        type=_optional_int,
        default=defaults["max_segment_frames"],
        help="force-close a segment after this many frames",
    )
    p.add_argument(
        "--source-language",
        default=defaults["source_language"],
        choices=LANGUAGE_CODES,
        help="spoken language code",
    )
    p.add_argument(
        "--target-language",
        default=defaults["target_language"],
        choices=LANGUAGE_CODES,
        help="subtitle language code",
    )
    p.add_argument("--api-base-url", default=defaults["api_base_url"], help="OpenAI-compatible API base URL")
    p.add_argument("--api-key-env", default=defaults["api_key_env"], help="environment variable holding the API key")
    p.add_argument("--recognition-model", default=defaults["recognition_model"], help="speech-to-text model")
    p.add_argument("--translation-model", default=defaults["translation_model"], help="chat model used to translate")
    p.add_argument("--translator", default=defaults["translator"], choices=["llm", "echo"], help="translator provider")
    p.add_argument(
        "--stage-timeout-sec",
        type=float,
        default=defaults["stage_timeout_sec"],
        help="per-stage timeout for recognition and translation",
    )
    p.add_argument(
        "--max-concurrency",
        type=int,
        default=defaults["max_concurrency"],
        help="utterances processed at once (1 = strictly sequential)",
    )
    p.add_argument("--font-size", type=int, default=defaults["font_size"], help="subtitle font size")
    p.add_argument("--poll-ms", type=int, default=defaults["poll_ms"], help="UI queue poll interval (ms)")
    p.add_argument(
        "--max-updates-per-tick",
        type=int,
        default=defaults["max_updates_per_tick"],
        help="max subtitles to apply per UI timer tick",
    )
    p.add_argument(
        "--print-console",
        action=argparse.BooleanOptionalAction,
        default=defaults["print_console"],
        help="print delivered subtitles to console",
    )
    p.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=defaults["headless"],
        help="run without the subtitle window",
    )
    p.add_argument("--input-wav", default=defaults["input_wav"], help="replay a 16-bit WAV file instead of the mic")
    p.add_argument("--debug", action="store_true", help="log segmenter decisions")
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = resolve_defaults(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    args = parser.parse_args(argv)
    if defaults.get("list_devices"):
        args.list_devices = True
    if defaults.get("debug"):
        args.debug = True
    return args
