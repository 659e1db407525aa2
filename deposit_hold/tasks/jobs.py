from deposit_hold.tasks.celery_app import celery
from deposit_hold.tasks import worker_jobs

@celery.task(name="deposit_hold.tasks.jobs.send_deposit_links")
def send_deposit_links():
    return worker_jobs.run_deposit_scheduler()

@celery.task(name="deposit_hold.tasks.jobs.sweep_stores")
def sweep_stores():
    return worker_jobs.sweep_stores()
