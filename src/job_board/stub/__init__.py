from job_board.stub.main import create_stub_app

__all__ = ["create_stub_app"]
