"""Extended Kalman filtering for mobile robot state estimation.

This package contains the reusable estimation components:
- estimators: Gaussian belief, EKF predict/update engine, gating, sessions
- models: Motion and measurement model capabilities and concrete models
- utils: Angle and linear-algebra helpers
"""

__version__ = "0.1.0"
