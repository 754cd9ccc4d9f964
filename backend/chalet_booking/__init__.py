"""Бэкенд виджета бронирования шале поверх RSR API."""
