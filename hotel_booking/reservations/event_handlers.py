"""
Обработчики доменных событий бронирования.

Превращают события в письма и запросы на возврат. Подписываются
на шину событий в bootstrap через functools.partial.
"""

from pydantic import BaseModel

from .domain import Booking, BookingCancelled, BookingCreated, RefundRequested
from .interfaces import EmailMessage, INotifier, IPaymentProcessor


class MailSettings(BaseModel):
    """Реквизиты отеля для писем."""

    hotel_name: str
    owner_email: str
    sender_email: str


def _booking_details(booking: Booking) -> str:
    return (
        f"<b>Booking ID:</b> {booking.booking_id}<br>"
        f"<b>Room Type:</b> {booking.room_type}<br>"
        f"<b>Check-in:</b> {booking.checkin.isoformat()}<br>"
        f"<b>Check-out:</b> {booking.checkout.isoformat()}<br>"
        f"<b>Room Price:</b> ₹{booking.base_price}<br>"
        f"<b>GST:</b> ₹{booking.tax}<br>"
        f"<b>Total Amount:</b> <b>₹{booking.total_price}</b><br>"
    )


def notify_customer_booked(
    event: BookingCreated, notifier: INotifier, mail: MailSettings
) -> None:
    """Подтверждение бронирования гостю."""
    booking = event.booking
    notifier.send(
        EmailMessage(
            to=booking.customer_email,
            sender=f"{mail.hotel_name} <{mail.sender_email}>",
            subject=f"Your Booking Confirmed - {mail.hotel_name}",
            html=(
                "<p>Dear Customer,<br>"
                f"Your booking is <b>CONFIRMED</b> at <b>{mail.hotel_name}</b>.<br><br>"
                f"{_booking_details(booking)}"
                f"<b>Mobile:</b> {booking.customer_phone}<br><br>"
                f"Thank you for choosing <b>{mail.hotel_name}</b>!</p>"
            ),
        )
    )


def notify_owner_booked(
    event: BookingCreated, notifier: INotifier, mail: MailSettings
) -> None:
    """Оповещение владельца о новом бронировании."""
    booking = event.booking
    notifier.send(
        EmailMessage(
            to=mail.owner_email,
            sender=f"Booking Alert <{mail.sender_email}>",
            subject=f"New Booking - {booking.booking_id}",
            html=(
                "<b>New Booking Received</b><br>"
                f"{_booking_details(booking)}"
                f"<b>Customer Email:</b> {booking.customer_email}<br>"
                f"<b>Customer Phone:</b> {booking.customer_phone}<br>"
            ),
        )
    )


def notify_customer_cancelled(
    event: BookingCancelled, notifier: INotifier, mail: MailSettings
) -> None:
    """Письмо гостю об отмене и сумме возврата."""
    booking = event.booking
    online_note = (
        "It will be processed within 3-5 business days.<br>"
        if booking.paid_online and event.refund_amount > 0
        else ""
    )
    notifier.send(
        EmailMessage(
            to=booking.customer_email,
            sender=f"{mail.hotel_name} <{mail.sender_email}>",
            subject=f"Booking Cancelled - {mail.hotel_name}",
            html=(
                "<p>Dear Customer,<br>"
                f"Your booking <b>{booking.booking_id}</b> has been <b>cancelled</b>.<br>"
                f"Refund amount: <b>₹{event.refund_amount}</b><br>"
                f"{online_note}"
                f"Thank you for choosing {mail.hotel_name}!</p>"
            ),
        )
    )


def notify_owner_cancelled(
    event: BookingCancelled, notifier: INotifier, mail: MailSettings
) -> None:
    booking = event.booking
    notifier.send(
        EmailMessage(
            to=mail.owner_email,
            sender=f"Booking Alert <{mail.sender_email}>",
            subject=f"Booking Cancelled - {booking.booking_id}",
            html=(
                "<b>Booking Cancelled</b><br>"
                f"<b>Booking ID:</b> {booking.booking_id}<br>"
                f"<b>Refund:</b> ₹{event.refund_amount}<br>"
                f"<b>Customer Email:</b> {booking.customer_email}<br>"
                f"<b>Customer Phone:</b> {booking.customer_phone}<br>"
            ),
        )
    )


def on_refund_requested(event: RefundRequested, processor: IPaymentProcessor) -> None:
    """Запускает возврат средств по онлайн-платежу."""
    processor.refund(
        event.payment_reference,
        event.amount,
        {"booking_id": event.booking_id},
    )
