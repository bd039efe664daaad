# poseproof/alignment_log.py
"""
Postgres backed debug log for export alignments.

Responsibilities:
- Build a structured entry describing one layout computation
- Manage a single Postgres connection (only when debug logging is enabled)
- Create the alignment_log table if needed
- Provide record_alignment, fetch_alignment_log

If Postgres is not reachable, logging is disabled gracefully; an export
never fails because of this module.
"""

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from .config import debug_alignment_enabled
from .landmarks import LEFT_HIP, LEFT_SHOULDER, NOSE, RIGHT_HIP, RIGHT_SHOULDER, is_complete_pose
from .layout import AlignedDrawResult
from .logger import console

_DB_CONN = None
_DB_AVAILABLE = False


def _get_connection():
    """
    Get or create a global Postgres connection.

    Returns None when debug logging is off or Postgres cannot be reached.
    """
    global _DB_CONN, _DB_AVAILABLE

    if not debug_alignment_enabled():
        return None

    if _DB_AVAILABLE and _DB_CONN is not None and not _DB_CONN.closed:
        return _DB_CONN

    try:
        _DB_CONN = psycopg2.connect(
            host=os.getenv("DB_HOST", "postgres"),
            port=int(os.getenv("DB_PORT", "5432")),
            dbname=os.getenv("DB_NAME", "poseproof"),
            user=os.getenv("DB_USER", "postgres"),
            password=os.getenv("DB_PASSWORD", "postgres"),
            connect_timeout=3,
        )
        _DB_CONN.autocommit = True
        _DB_AVAILABLE = True

        _init_log_table(_DB_CONN)
        console.log("[green]Alignment log store connected[/green]")
        return _DB_CONN

    except psycopg2.Error as exc:
        if not _DB_AVAILABLE:
            console.log(f"[yellow]Alignment log disabled (cannot connect: {exc})[/yellow]")
        _DB_AVAILABLE = False
        _DB_CONN = None
        return None


def reset_connection() -> None:
    """Drop the cached connection (used between tests and on shutdown)."""
    global _DB_CONN, _DB_AVAILABLE
    if _DB_CONN is not None and not _DB_CONN.closed:
        _DB_CONN.close()
    _DB_CONN = None
    _DB_AVAILABLE = False


def _init_log_table(conn) -> None:
    with conn.cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS alignment_log (
                id SERIAL PRIMARY KEY,
                source TEXT NOT NULL,
                entry_json TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT NOW()
            );
            """
        )


def _point_summary(landmarks, index: int, with_x: bool = True) -> Dict[str, float]:
    lm = landmarks[index]
    summary = {"y": lm.y, "visibility": lm.visibility}
    if with_x:
        summary["x"] = lm.x
    return summary


def summarize_landmarks(landmarks) -> Optional[Dict[str, Any]]:
    """Key landmarks only; the full 33-point array is too noisy to log."""
    if landmarks is None:
        return None
    if not is_complete_pose(landmarks):
        return {"count": len(landmarks)}
    return {
        "count": len(landmarks),
        "nose": _point_summary(landmarks, NOSE, with_x=False),
        "leftShoulder": _point_summary(landmarks, LEFT_SHOULDER),
        "rightShoulder": _point_summary(landmarks, RIGHT_SHOULDER),
        "leftHip": _point_summary(landmarks, LEFT_HIP, with_x=False),
        "rightHip": _point_summary(landmarks, RIGHT_HIP, with_x=False),
    }


def build_log_entry(
    result: AlignedDrawResult,
    before_size,
    after_size,
    target_width: float,
    target_height: float,
    before_landmarks=None,
    after_landmarks=None,
    source: str = "png",
) -> Dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "input": {
            "beforeImg": {"width": before_size[0], "height": before_size[1]},
            "afterImg": {"width": after_size[0], "height": after_size[1]},
            "targetWidth": target_width,
            "targetHeight": target_height,
            "beforeLandmarks": summarize_landmarks(before_landmarks),
            "afterLandmarks": summarize_landmarks(after_landmarks),
        },
        "result": result.to_dict(),
        "metadata": {"source": source},
    }


def record_alignment(entry: Dict[str, Any]) -> bool:
    """
    Store one entry. Returns False when logging is disabled or the write
    failed.
    """
    conn = _get_connection()
    if conn is None:
        return False

    try:
        with conn.cursor() as cur:
            cur.execute(
                "INSERT INTO alignment_log (source, entry_json) VALUES (%s, %s)",
                (entry.get("metadata", {}).get("source", "png"), json.dumps(entry)),
            )
        return True
    except psycopg2.Error as exc:
        console.log(f"[yellow]Failed to store alignment log entry: {exc}[/yellow]")
        return False


def fetch_alignment_log(limit: int = 50) -> List[Dict[str, Any]]:
    """Most recent entries first; empty when the store is unavailable."""
    conn = _get_connection()
    if conn is None:
        return []

    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                "SELECT entry_json FROM alignment_log ORDER BY id DESC LIMIT %s",
                (limit,),
            )
            rows = cur.fetchall()
    except psycopg2.Error as exc:
        console.log(f"[yellow]Alignment log lookup failed: {exc}[/yellow]")
        return []

    entries = []
    for row in rows:
        try:
            entries.append(json.loads(row["entry_json"]))
        except ValueError as exc:
            console.log(f"[yellow]Skipping undecodable alignment log entry: {exc}[/yellow]")
    return entries
