"""
Planificateur APScheduler pour la sortie automatique des pointages oubliés.

Le job s'exécute toutes les CLEANUP_INTERVAL_MINUTES et force un sys_checkout
pour les utilisateurs entrés depuis plus de STALE_CHECKIN_CLEANUP_HOURS.
Désactivé par défaut (AUTO_CHECKOUT_ENABLED).
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from checker.config import settings
from checker.database import SessionLocal

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def _auto_checkout_scheduled() -> None:
    """
    Tâche planifiée : sort automatiquement les entrées oubliées.
    Import local pour éviter les imports circulaires.
    """
    from checker.services.auto_checkout_service import run_auto_checkout

    db = SessionLocal()
    try:
        report = run_auto_checkout(db)
        logger.info(
            "Sortie automatique : %d examinés, %d sortis, %d erreurs",
            report.users_scanned,
            len(report.checked_out),
            len(report.errors),
        )
    except Exception as exc:
        logger.error("Erreur lors de la sortie automatique : %s", exc)
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    if not settings.AUTO_CHECKOUT_ENABLED:
        logger.info("Sortie automatique désactivée, scheduler non démarré.")
        return
    scheduler.add_job(
        _auto_checkout_scheduled,
        trigger="interval",
        minutes=settings.CLEANUP_INTERVAL_MINUTES,
        id="stale_checkin_cleanup",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler démarré : sortie automatique toutes les %d minutes.",
        settings.CLEANUP_INTERVAL_MINUTES,
    )


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
