# poseproof/logger.py
from rich.console import Console
from rich.traceback import install

# Tracebacks without locals: frames hold full decoded image buffers
install(show_locals=False, max_frames=20)

# Global console logger for the entire service; the timestamp is enough
console = Console(log_path=False)


def describe_landmarks(landmarks) -> str:
    """Short description of a landmark array for log lines."""
    if landmarks is None:
        return "no landmarks"
    return f"{len(landmarks)} landmarks"


def log_export_request(kind: str, export_format: str, before_landmarks, after_landmarks) -> None:
    console.log(
        f"[blue]{kind} {export_format} "
        f"(before: {describe_landmarks(before_landmarks)}, "
        f"after: {describe_landmarks(after_landmarks)})[/blue]"
    )
