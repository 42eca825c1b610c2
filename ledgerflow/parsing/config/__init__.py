from .columns import ColumnMapping, normalize_header

__all__ = ['ColumnMapping', 'normalize_header']
