"""
Test suite for the developer post tracker

Test Organization:
- test_comment_tree.py: Comment tree search by id
- test_reddit_client.py: Reddit JSON client
- test_normalizer.py: Submission and comment normalization
- test_tracker_api.py: Tracker API client used by the worker
- test_account_cache.py: Per-game account cache
- test_ingest.py: Ingestion orchestrator outcomes
- test_job_queue.py: Redis job queue and rate limiter
- test_worker.py: Worker configuration and CLI
- test_enqueue_script.py: Enqueue script
- test_connection_manager.py: DB connection management and schema
- test_fastapi_app.py: FastAPI application setup
- test_response_envelope.py: Standard response envelope
- test_games_api.py: Game, developer and account endpoints
- test_posts_api.py: Post listing and storage endpoints

Run all tests:
    python -m pytest tests/ -v
"""
