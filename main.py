"""
TaskDefender — behavioral analytics engine.
Entry point: runs the collector and insight engine on a headless Qt event loop.
"""

import faulthandler
import logging
import random
import sys
from pathlib import Path

faulthandler.enable()

# Ensure taskdefender is importable when run from a checkout
sys.path.insert(0, str(Path(__file__).resolve().parent))

from PySide6.QtGui import QGuiApplication

from taskdefender.config import load_config
from taskdefender.data.database import Database
from taskdefender.data.repository import Repository
from taskdefender.ml.insight_engine import ContextualInsightEngine
from taskdefender.services.action_ledger import ActionLedger
from taskdefender.services.activity_collector import ActivityCollector
from taskdefender.services.activity_sources import default_sources
from taskdefender.services.focus_tracker import FocusTracker, QtFocusSignals


def setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler("taskdefender.log", encoding="utf-8"),
        ],
    )


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Starting TaskDefender engine...")

    config = load_config()

    app = QGuiApplication(sys.argv)
    app.setApplicationName("TaskDefender")
    app.setOrganizationName("TaskDefender")

    db = Database(Path(config["database_path"]))
    repo = Repository(db.connect())

    ledger = ActionLedger(repo, history_cap=config["action_history_cap"])
    collector = ActivityCollector(
        repo,
        sources=default_sources(random.Random(), config["enabled_sources"]),
        user_id=config["user_id"],
        sampling_interval_s=config["sampling_interval_s"],
        retention_days=config["activity_retention_days"],
    )

    def on_analysis(insights, recommendations) -> None:
        for insight in insights:
            logger.info("Insight: %s (%d%% confidence)", insight.title, insight.confidence)
        for rec in recommendations:
            logger.info("Recommendation [%s]: %s", rec.priority, rec.title)

    engine = ContextualInsightEngine(
        collector,
        repo,
        analysis_interval_s=config["analysis_interval_s"],
        insight_retention_days=config["insight_retention_days"],
        on_analysis=on_analysis,
    )

    # Exposed for a UI layer to start focus sessions against
    tracker = FocusTracker(
        repo,
        QtFocusSignals(app),
        ledger=ledger,
        session_cap=config["focus_session_cap"],
    )

    def shutdown() -> None:
        if tracker.is_tracking:
            tracker.stop_tracking()
        engine.destroy()
        collector.destroy()
        db.close()
        logger.info("Engine stopped.")

    app.aboutToQuit.connect(shutdown)

    collector.start_monitoring()
    engine.start_continuous_analysis()

    logger.info("Engine started.")
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
