import multiprocessing, os

bind = f"0.0.0.0:{os.getenv('PORT','5001')}"
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count()))
threads = 1
# must exceed CONVERT_TIMEOUT so a slow conversion still gets its cleanup
timeout = int(float(os.getenv("CONVERT_TIMEOUT", "120"))) + 60
worker_class = "uvicorn.workers.UvicornWorker"
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL","info").lower()
