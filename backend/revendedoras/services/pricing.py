"""Precios de reventa: mayorista + margen de la revendedora, redondeado a $50."""
import math


def redondeo_50(x: float) -> float:
    """Redondea al múltiplo de 50 más cercano (.5 hacia arriba)."""
    return math.floor(x / 50 + 0.5) * 50


def calcular_precio_venta(precio_mayorista: float, margen: float) -> float:
    return redondeo_50(precio_mayorista * (1 + margen / 100))


def format_currency(amount) -> str:
    """$12.345 (separador de miles argentino, sin decimales)."""
    if amount is None:
        return "$0"
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return "$0"
    if math.isnan(value):
        return "$0"
    return "$" + f"{round(value):,}".replace(",", ".")
