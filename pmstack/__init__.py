"""pmstack - deployment topology builder for the patient-management platform."""

__version__ = "0.1.0"
