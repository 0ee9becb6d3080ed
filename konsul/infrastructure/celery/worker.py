# konsul/infrastructure/celery/worker.py
import logging
from typing import Optional

from celery import Celery

import config

celery_app = Celery(
    'tasks',
    broker=config.CELERY_BROKER_URL,
    backend=None  # El resultado del envío queda en la línea de tiempo del documento.
)

celery_app.conf.update(
    task_ignore_result=True,
    task_acks_late=True
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - [%(funcName)s] - %(message)s')

from konsul.application.use_cases.send_document import SendDocumentUseCase
from konsul.infrastructure.external.resend_adapter import ResendAdapter
from konsul.infrastructure.persistence.database import SessionLocal
from konsul.infrastructure.persistence.document_repository_adapter import SQLDocumentRepository


@celery_app.task(name="tasks.send_document_email")
def send_document_email(
    document_id: str,
    to: str,
    html: str,
    subject: Optional[str] = None,
    pdf_base64: Optional[str] = None,
    sender_name: Optional[str] = None,
    user_id: Optional[str] = None
):
    logging.info(f"[{document_id}] >>> INICIO DE LA TAREA DE ENVÍO.")
    db_session = SessionLocal()
    try:
        use_case = SendDocumentUseCase(
            document_repo=SQLDocumentRepository(db_session),
            email_sender=ResendAdapter()
        )
        result = use_case.execute(
            document_id,
            to=to,
            html=html,
            subject=subject,
            pdf_base64=pdf_base64,
            sender_name=sender_name,
            user_id=user_id
        )
        db_session.commit()
        logging.info(f"[{document_id}] Tarea terminada. success={result.get('success')}")
        return result
    except Exception:
        logging.error(f"[{document_id}] ¡ERROR! Se ha capturado una excepción. Iniciando rollback.", exc_info=True)
        db_session.rollback()
        raise
    finally:
        db_session.close()
