"""Google API clients used by the dashboard."""
from .sheets import GoogleSheetsSource, TabularSource

__all__ = ['GoogleSheetsSource', 'TabularSource']
