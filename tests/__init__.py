"""
forecastflow Test Suite

- test_lagged.py: lagged dataset construction and time index gates
- test_windows.py: validation window layout
- test_drivers.py: training / prediction drivers and the result store
- test_evaluation.py: metrics, overlap handling, forecast combination
- test_workflow_smoke.py: end-to-end run, saved outputs and CLI (synthetic data)
"""
