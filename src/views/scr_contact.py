from typing import Dict

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import Button, Input, Label, Markdown, TextArea

from db.gateway import GatewayError
from shop.errors import ValidationError
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal

CONTACT_INFO_MD = """\
#### Email Us
info@kumaloyoghurt.com, we respond within 24 hours.

#### Delivery Areas
Ask about delivery options for your area.

#### Bulk Orders
Special pricing for events and businesses.
"""

# widget id -> ContactForm attribute
FORM_INPUTS: Dict[str, str] = {
    "input-contact-name": "name",
    "input-contact-email": "email",
    "input-contact-phone": "phone",
}


class ContactScreen(BaseScreen):
    """
    Send the shop a message. The form is kept if sending fails.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-contact"):
            yield Markdown(CONTACT_INFO_MD, id="md-contact-info")
            with VerticalScroll(id="div-contact-form"):
                yield Label("Send Us a Message", classes="section-title")
                yield Label("Your Name *")
                yield Input(placeholder="Enter your full name", id="input-contact-name")
                yield Label("Email Address *")
                yield Input(placeholder="your@email.com", id="input-contact-email")
                yield Label("Phone Number (Optional)")
                yield Input(placeholder="Your phone number", id="input-contact-phone")
                yield Label("Your Message *")
                yield TextArea(id="textarea-contact-message")
                with Vertical(id="div-contact-actions"):
                    yield Button("Send Message", id="btn-send", variant="primary")
                    yield Label(
                        "Thank you for contacting us! We'll get back to you soon.",
                        id="label-contact-success",
                        classes="hidden",
                    )

    def on_mount(self) -> None:
        form = self.app.state.contact_form
        for input_id, attr in FORM_INPUTS.items():
            self.query_one(f"#{input_id}", Input).value = getattr(form, attr)
        self.query_one("#textarea-contact-message", TextArea).text = form.message

        contact = self.app.state.contact
        contact.on_success_change(self._show_success)
        self._show_success(contact.succeeded)

    @on(Input.Changed)
    def handle_input(self, event: Input.Changed) -> None:
        attr = FORM_INPUTS.get(event.input.id or "")
        if attr:
            setattr(self.app.state.contact_form, attr, event.value)
            event.input.remove_class("-invalid")

    @on(TextArea.Changed, "#textarea-contact-message")
    def handle_message(self, event: TextArea.Changed) -> None:
        self.app.state.contact_form.message = event.text_area.text
        event.text_area.remove_class("-invalid")

    @on(Button.Pressed, "#btn-send")
    @work(group="send")
    async def handle_send(self) -> None:
        state = self.app.state
        send_btn = self.query_one("#btn-send", Button)
        send_btn.disabled = True
        send_btn.label = "Sending..."
        try:
            await state.contact.submit(state.contact_form)
        except ValidationError as e:
            self._mark_invalid(e.fields)
            self.notify(str(e), severity="error")
            return
        except GatewayError:
            await self.app.push_screen_wait(
                DialogModal("Error submitting contact form. Please try again.", tone="error")
            )
            return
        finally:
            send_btn.disabled = False
            send_btn.label = "Send Message"

        for input_id in FORM_INPUTS:
            self.query_one(f"#{input_id}", Input).value = ""
        self.query_one("#textarea-contact-message", TextArea).text = ""

    def _mark_invalid(self, fields) -> None:
        widgets = [
            self.query_one(f"#{input_id}", Input)
            for input_id, attr in FORM_INPUTS.items()
            if attr in fields
        ]
        if "message" in fields:
            widgets.append(self.query_one("#textarea-contact-message", TextArea))
        for w in widgets:
            w.add_class("-invalid")
        if widgets:
            widgets[0].focus()

    def _show_success(self, succeeded: bool) -> None:
        label = self.query_one("#label-contact-success", Label)
        label.set_class(not succeeded, "hidden")
