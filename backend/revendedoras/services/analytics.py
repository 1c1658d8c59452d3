"""
Analytics de la revendedora: métricas del período, clientas y productos.
Los pedidos cancelados no cuentan en ninguna métrica. La ganancia es estimada
(venta - mayorista); la real sale de las consolidaciones pagadas.
"""
import logging
import math
from datetime import datetime
from typing import Dict, List, Optional

from revendedoras.models import ESTADO_CANCELADO, ESTADO_PENDIENTE, ESTADOS_ENTREGADO, Pedido

logger = logging.getLogger(__name__)

PERIODS = ("all", "month", "year")
TOP_CLIENTAS = 10
TOP_PRODUCTOS = 10
PRODUCTOS_FAVORITOS = 5
MESES_HISTORIAL = 6
SIN_MARCA = "Sin marca"


def period_start(period: str, now: datetime) -> Optional[datetime]:
    if period == "month":
        return datetime(now.year, now.month, 1)
    if period == "year":
        return datetime(now.year, 1, 1)
    return None


def _pedidos(user_id: int, since: Optional[datetime] = None) -> List[Pedido]:
    q = Pedido.query.filter(Pedido.user_id == user_id, Pedido.estado != ESTADO_CANCELADO)
    if since is not None:
        q = q.filter(Pedido.created_at >= since)
    return q.order_by(Pedido.created_at.desc(), Pedido.id.desc()).all()


def _clienta_key(nombre: str) -> str:
    return (nombre or "").strip().lower()


def _mes(value: datetime) -> str:
    return value.strftime("%Y-%m")


def _ultimos_meses(now: datetime, n: int) -> List[str]:
    """Los últimos n meses (YYYY-MM), del más viejo al actual."""
    meses = []
    year, month = now.year, now.month
    for _ in range(n):
        meses.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(meses))


def _dias_desde(value: datetime, now: datetime) -> int:
    return max(math.ceil((now - value).total_seconds() / 86400), 0)


def estado_actividad(dias_sin_comprar: int) -> str:
    if dias_sin_comprar <= 15:
        return "activa"
    if dias_sin_comprar <= 30:
        return "regular"
    if dias_sin_comprar <= 60:
        return "inactiva"
    return "riesgo"


def tendencia(ticket_promedio: float, ticket_ultimos_30: float) -> str:
    """Ticket de los últimos 30 días contra el promedio histórico (±20%)."""
    if ticket_ultimos_30 == 0:
        return "bajando"
    if ticket_ultimos_30 > ticket_promedio * 1.2:
        return "subiendo"
    if ticket_ultimos_30 < ticket_promedio * 0.8:
        return "bajando"
    return "estable"


def _top_productos(pedidos: List[Pedido], limit: int) -> List[dict]:
    productos: Dict[str, dict] = {}
    for pedido in pedidos:
        for linea in pedido.lineas:
            key = f"{linea.product_id}-{linea.variant_id}"
            item = productos.setdefault(key, {
                "nombre": linea.name,
                "brand": linea.brand or SIN_MARCA,
                "cantidad": 0,
                "totalVentas": 0.0,
            })
            item["cantidad"] += linea.qty
            item["totalVentas"] += linea.venta * linea.qty
    top = sorted(productos.values(), key=lambda p: -p["cantidad"])[:limit]
    for item in top:
        item["totalVentas"] = round(item["totalVentas"])
    return top


def get_analytics(user_id: int, period: str = "all", now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    pedidos = _pedidos(user_id, period_start(period, now))

    total_ventas = sum(p.total_venta for p in pedidos)
    total_ganancia = sum(p.total_venta - p.total_mayorista for p in pedidos)

    clientas: Dict[str, dict] = {}
    for pedido in pedidos:
        c = clientas.setdefault(_clienta_key(pedido.cliente), {
            "nombre": pedido.cliente,
            "totalCompras": 0.0,
            "cantidadPedidos": 0,
            "ultimaCompra": pedido.created_at,
        })
        c["totalCompras"] += pedido.total_venta
        c["cantidadPedidos"] += 1
        if pedido.created_at > c["ultimaCompra"]:
            c["ultimaCompra"] = pedido.created_at
    top_clientas = sorted(clientas.values(), key=lambda c: -c["totalCompras"])[:TOP_CLIENTAS]
    for c in top_clientas:
        c["totalCompras"] = round(c["totalCompras"])
        c["ultimaCompra"] = c["ultimaCompra"].isoformat()

    ventas_por_mes = {mes: 0.0 for mes in _ultimos_meses(now, MESES_HISTORIAL)}
    for pedido in pedidos:
        mes = _mes(pedido.created_at)
        if mes in ventas_por_mes:
            ventas_por_mes[mes] += pedido.total_venta

    por_estado: Dict[str, int] = {}
    for pedido in pedidos:
        por_estado[pedido.estado] = por_estado.get(pedido.estado, 0) + 1

    return {
        "metricas": {
            "totalPedidos": len(pedidos),
            "totalVentas": round(total_ventas),
            "totalGanancia": round(total_ganancia),
            "totalClientas": len(clientas),
            "ticketPromedio": round(total_ventas / len(pedidos)) if pedidos else 0,
        },
        "topClientas": top_clientas,
        "ventasMensuales": [{"mes": mes, "total": round(total)} for mes, total in ventas_por_mes.items()],
        "topProductos": _top_productos(pedidos, TOP_PRODUCTOS),
        "pedidosPorEstado": por_estado,
        "periodo": period,
    }


def get_clientas(user_id: int, now: Optional[datetime] = None) -> List[dict]:
    """Una fila por clienta (por nombre, sin distinguir mayúsculas), mayor compra primero."""
    now = now or datetime.utcnow()
    grupos: Dict[str, List[Pedido]] = {}
    for pedido in _pedidos(user_id):
        grupos.setdefault(_clienta_key(pedido.cliente), []).append(pedido)

    clientas = []
    for pedidos in grupos.values():
        resumen = _resumen_clienta(pedidos, now)
        resumen["pedidosPendientes"] = sum(1 for p in pedidos if p.estado == ESTADO_PENDIENTE)
        resumen["pedidosEntregados"] = sum(1 for p in pedidos if p.estado in ESTADOS_ENTREGADO)
        clientas.append(resumen)
    clientas.sort(key=lambda c: -c["totalCompras"])
    return clientas


def _resumen_clienta(pedidos: List[Pedido], now: datetime) -> dict:
    """pedidos viene del más nuevo al más viejo."""
    ultimos_30 = [p for p in pedidos if (now - p.created_at).days < 30]
    ultimos_90 = [p for p in pedidos if (now - p.created_at).days < 90]
    total = sum(p.total_venta for p in pedidos)
    compras_30 = sum(p.total_venta for p in ultimos_30)
    ticket = total / len(pedidos)
    dias = _dias_desde(pedidos[0].created_at, now)
    telefono = next((p.telefono for p in pedidos if p.telefono), None)

    return {
        "nombre": pedidos[0].cliente,
        "telefono": telefono,
        "totalCompras": round(total),
        "cantidadPedidos": len(pedidos),
        "productosComprados": sum(linea.qty for p in pedidos for linea in p.lineas),
        "ticketPromedio": round(ticket),
        "primeraCompra": pedidos[-1].created_at.isoformat(),
        "ultimaCompra": pedidos[0].created_at.isoformat(),
        "comprasUltimos30Dias": round(compras_30),
        "comprasUltimos90Dias": round(sum(p.total_venta for p in ultimos_90)),
        "pedidosUltimos30Dias": len(ultimos_30),
        "pedidosUltimos90Dias": len(ultimos_90),
        "diasSinComprar": dias,
        "estado": estado_actividad(dias),
        "tendencia": tendencia(ticket, compras_30 / len(ultimos_30) if ultimos_30 else 0),
    }


def get_clienta_detail(user_id: int, cliente: str, now: Optional[datetime] = None) -> Optional[dict]:
    """Historial de una clienta. None si no tiene pedidos."""
    now = now or datetime.utcnow()
    key = _clienta_key(cliente)
    pedidos = [p for p in _pedidos(user_id) if _clienta_key(p.cliente) == key]
    if not pedidos:
        return None

    por_mes: Dict[str, float] = {}
    for pedido in pedidos:
        mes = _mes(pedido.created_at)
        por_mes[mes] = por_mes.get(mes, 0.0) + pedido.total_venta

    fechas = sorted(p.created_at for p in pedidos)
    frecuencia = 0.0
    if len(fechas) > 1:
        gaps = [(b - a).total_seconds() / 86400 for a, b in zip(fechas, fechas[1:])]
        frecuencia = sum(gaps) / len(gaps)

    favoritos = _top_productos(pedidos, PRODUCTOS_FAVORITOS)
    for item in favoritos:
        item["totalGastado"] = item.pop("totalVentas")

    resumen = _resumen_clienta(pedidos, now)
    return {
        "nombre": resumen.pop("nombre"),
        "telefono": resumen.pop("telefono"),
        "metricas": {**resumen, "frecuenciaPromedioDias": round(frecuencia, 1)},
        "productosFavoritos": favoritos,
        "historialMensual": [{"mes": mes, "total": round(total)} for mes, total in sorted(por_mes.items())],
        "pedidos": [
            {
                "id": p.id,
                "fecha": p.created_at.isoformat(),
                "estado": p.estado,
                "totalProductos": sum(linea.qty for linea in p.lineas),
                "totalVenta": round(p.total_venta),
                "productos": [
                    {"nombre": linea.name, "talle": linea.talle, "color": linea.color,
                     "cantidad": linea.qty, "precio": linea.venta}
                    for linea in p.lineas
                ],
            }
            for p in pedidos
        ],
    }
