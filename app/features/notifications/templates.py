"""HTML bodies for the transactional emails (pt-BR)"""
from html import escape
from typing import List

from app.features.notifications.schemas import OrderItem

_TABLE_HEAD = """
          <table style="width: 100%; border-collapse: collapse; margin: 20px 0;">
            <thead>
              <tr style="background-color: #e5e7eb;">
                <th style="padding: 8px; text-align: left;">Produto</th>
                <th style="padding: 8px; text-align: center;">Qtd</th>
                <th style="padding: 8px; text-align: right;">Preço</th>
                <th style="padding: 8px; text-align: right;">Subtotal</th>
              </tr>
            </thead>
            <tbody>"""


def format_brl(value: float) -> str:
    return f"R$ {value:.2f}"


def short_order_id(order_id: str) -> str:
    return order_id[:8]


def render_items_table(items: List[OrderItem]) -> str:
    cell = "padding: 8px; border-bottom: 1px solid #e5e7eb;"
    rows = "".join(
        f'<tr><td style="{cell}">{escape(item.product_name)}</td>'
        f'<td style="{cell} text-align: center;">{item.quantity}</td>'
        f'<td style="{cell} text-align: right;">{format_brl(item.product_price)}</td>'
        f'<td style="{cell} text-align: right;">{format_brl(item.subtotal)}</td></tr>'
        for item in items
    )
    return f"{_TABLE_HEAD}{rows}</tbody></table>"


def render_customer_confirmation(
    order_id: str,
    customer_name: str,
    store_name: str,
    items: List[OrderItem],
    total_amount: float,
) -> str:
    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h1 style="color: #333;">Pedido Confirmado!</h1>
        <p>Olá {escape(customer_name)},</p>
        <p>Recebemos seu pedido com sucesso! Aqui estão os detalhes:</p>
        <div style="background-color: #f9fafb; padding: 20px; border-radius: 8px; margin: 20px 0;">
          <h2 style="color: #555; margin-top: 0;">Pedido #{escape(short_order_id(order_id))}</h2>
          {render_items_table(items)}
          <div style="text-align: right; font-size: 18px; font-weight: bold; margin-top: 20px;">
            Total: {format_brl(total_amount)}
          </div>
        </div>
        <p>Você receberá atualizações sobre o status do seu pedido.</p>
        <p>Obrigado por comprar na {escape(store_name)}!</p>
      </div>
    """


def render_merchant_new_order(
    order_id: str,
    merchant_name: str,
    customer_name: str,
    customer_email: str,
    items: List[OrderItem],
    total_amount: float,
) -> str:
    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h1 style="color: #333;">Novo Pedido Recebido!</h1>
        <p>Olá {escape(merchant_name)},</p>
        <p>Você recebeu um novo pedido em sua loja!</p>
        <div style="background-color: #f9fafb; padding: 20px; border-radius: 8px; margin: 20px 0;">
          <h2 style="color: #555; margin-top: 0;">Pedido #{escape(short_order_id(order_id))}</h2>
          <div style="margin-bottom: 20px;">
            <strong>Cliente:</strong> {escape(customer_name)}<br>
            <strong>Email:</strong> {escape(customer_email)}
          </div>
          {render_items_table(items)}
          <div style="text-align: right; font-size: 18px; font-weight: bold; margin-top: 20px;">
            Total: {format_brl(total_amount)}
          </div>
        </div>
        <p>Acesse seu dashboard para gerenciar este pedido.</p>
      </div>
    """


def render_ticket_response(subject: str, message: str, protocol: str) -> str:
    body = escape(message).replace("\n", "<br>")
    return f"""
      <!DOCTYPE html>
      <html>
      <head><meta charset="utf-8"><title>{escape(subject)}</title></head>
      <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background: #667eea; color: white; padding: 20px; border-radius: 8px 8px 0 0; text-align: center;">
          <h1 style="margin: 0; font-size: 24px;">Suporte ao Cliente</h1>
        </div>
        <div style="padding: 30px; border: 1px solid #e0e0e0; border-top: none; border-radius: 0 0 8px 8px;">
          <p style="color: #666; font-size: 14px;">Referência: <code>{escape(protocol)}</code></p>
          <div style="background: #f9f9f9; padding: 20px; border-radius: 6px; margin: 20px 0;">{body}</div>
          <p style="text-align: center; color: #888; font-size: 12px;">
            Este é um e-mail automático. Se você não solicitou este contato, por favor desconsidere esta mensagem.
          </p>
        </div>
      </body>
      </html>
    """
