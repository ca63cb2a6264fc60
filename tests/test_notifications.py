from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException

from app.features.notifications.email_service import EmailSender
from app.features.notifications.exceptions import EmailConfigurationError, EmailDeliveryError
from app.features.notifications.repositories import (
    MerchantRepository,
    TicketRepository,
    TicketResponseRepository,
)
from app.features.notifications.schemas import OrderConfirmationRequest, TicketReplyRequest
from app.features.notifications.service import NotificationService
from app.features.notifications.templates import render_items_table
from app.features.notifications.schemas import OrderItem


@pytest.fixture
def sender():
    mock = MagicMock(spec=EmailSender)
    mock.send.side_effect = ["email-1", "email-2"]
    return mock


@pytest.fixture
def service(fake_db, sender):
    return NotificationService(
        sender=sender,
        merchants=MerchantRepository(fake_db),
        tickets=TicketRepository(fake_db),
        ticket_responses=TicketResponseRepository(fake_db),
    )


def _order(**overrides):
    data = {
        "orderId": "a1b2c3d4-e5f6",
        "customerEmail": "cliente@email.com",
        "customerName": "João",
        "storeOwnerId": "merchant-1",
        "totalAmount": 120.5,
        "orderItems": [{"product_name": "Camiseta", "quantity": 2, "product_price": 60.25, "subtotal": 120.5}],
    }
    data.update(overrides)
    return OrderConfirmationRequest(**data)


class TestEmailSender:
    def test_requires_api_key(self):
        with pytest.raises(EmailConfigurationError):
            EmailSender(api_key="")

    def test_send_returns_id(self):
        with patch("app.features.notifications.email_service.resend.Emails.send", return_value={"id": "re_1"}) as send:
            email_id = EmailSender(api_key="re_key").send("from@x.com", ["to@x.com"], "Hi", "<p>Hi</p>")

        assert email_id == "re_1"
        assert send.call_args.args[0]["to"] == ["to@x.com"]

    def test_provider_failure(self):
        with patch("app.features.notifications.email_service.resend.Emails.send", side_effect=RuntimeError("422")):
            with pytest.raises(EmailDeliveryError):
                EmailSender(api_key="re_key").send("from@x.com", ["to@x.com"], "Hi", "<p>Hi</p>")


def test_items_table_escapes_and_formats():
    html = render_items_table([OrderItem(product_name="<b>Caneca</b>", quantity=1, product_price=9.9, subtotal=9.9)])

    assert "&lt;b&gt;Caneca&lt;/b&gt;" in html
    assert "R$ 9.90" in html


async def test_order_confirmation_emails_customer_and_merchant(service, fake_db, sender):
    fake_db.seed("profiles", id="merchant-1", full_name="Ana", store_name="Loja da Ana")
    fake_db.auth.admin.get_user_by_id.return_value = SimpleNamespace(user=SimpleNamespace(email="ana@loja.com"))

    response = await service.send_order_confirmation(_order())

    assert response.success is True
    assert response.customer_email_id == "email-1"
    assert response.store_owner_email_id == "email-2"
    customer_call, merchant_call = sender.send.call_args_list
    assert customer_call.args[1] == ["cliente@email.com"]
    assert customer_call.args[2] == "Pedido Confirmado - Loja da Ana"
    assert "Pedido #a1b2c3d4" in customer_call.args[3]
    assert "R$ 120.50" in customer_call.args[3]
    assert merchant_call.args[1] == ["ana@loja.com"]
    assert merchant_call.args[2] == "Novo Pedido Recebido - Loja da Ana"


async def test_order_confirmation_unknown_merchant(service):
    with pytest.raises(HTTPException) as exc:
        await service.send_order_confirmation(_order())
    assert exc.value.status_code == 404


async def test_ticket_reply_records_and_moves_ticket(service, fake_db, sender):
    ticket = fake_db.seed("tickets_landing_page", protocolo="TK-2026-0001", status="aberto")

    response = await service.reply_to_ticket(
        ticket["id"],
        TicketReplyRequest(to="cliente@email.com", subject="Sua solicitação", message="Olá!\nResolvido."),
        sent_by="admin-1",
    )

    assert response.success is True
    assert response.email_id == "email-1"
    assert "TK-2026-0001" in sender.send.call_args.args[3]
    assert "Olá!<br>Resolvido." in sender.send.call_args.args[3]

    record = fake_db.rows("ticket_landing_responses")[0]
    assert record["status_envio"] == "enviado"
    assert record["enviado_por"] == "admin-1"
    assert record["tipo"] == "email_enviado"
    assert fake_db.row("tickets_landing_page", ticket["id"])["status"] == "aguardando_cliente"


async def test_ticket_reply_failure_is_recorded(service, fake_db, sender):
    ticket = fake_db.seed("tickets_landing_page", protocolo="TK-1", status="aberto")
    sender.send.side_effect = EmailDeliveryError("rejected")

    with pytest.raises(EmailDeliveryError):
        await service.reply_to_ticket(
            ticket["id"], TicketReplyRequest(to="c@email.com", subject="Re", message="Oi")
        )

    assert fake_db.rows("ticket_landing_responses")[0]["status_envio"] == "falha"
    assert fake_db.row("tickets_landing_page", ticket["id"])["status"] == "aberto"


async def test_ticket_reply_bookkeeping_failure_still_succeeds(service, fake_db):
    ticket = fake_db.seed("tickets_landing_page", protocolo="TK-2", status="aberto")
    fake_db.failing_tables.add("ticket_landing_responses")

    response = await service.reply_to_ticket(
        ticket["id"], TicketReplyRequest(to="c@email.com", subject="Re", message="Oi")
    )

    assert response.success is True
    assert fake_db.row("tickets_landing_page", ticket["id"])["status"] == "aguardando_cliente"
