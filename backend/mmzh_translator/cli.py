# mmzh_translator/cli.py
import os
import uvicorn

def dev() -> None:
    uvicorn.run("mmzh_translator.main:app", host="0.0.0.0", port=8000, reload=True)

def start() -> None:
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("mmzh_translator.main:app", host="0.0.0.0", port=port)

def pytest() -> None:
    import pytest
    # Run the configured testpaths, stop after first failure
    pytest.main(["-x"])
