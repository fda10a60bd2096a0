"""
Localized UI and email strings.

Two built-in languages, English and French. Message templates use
str.format placeholders: {email}, {url}, {list}, {count}, {error}.
HTML message values expect already-escaped arguments.
"""

from __future__ import annotations

import copy
from typing import Any

SUPPORTED_LANGUAGES = ("en", "fr")

FOOTER = 'Made with <a target="new" href="https://github.com/bzg/subscribe">subscribe</a>'

STRINGS: dict[str, dict[str, dict[str, str]]] = {
    "en": {
        "page": {
            "title": "Mailing list subscription",
            "heading": "Subscribe to our mailing list",
            "subheading": "Join our mailing list to receive updates and news",
            "footer": FOOTER,
        },
        "form": {
            "email_placeholder": "you@example.com",
            "name_placeholder": "Your name (optional)",
            "list_label": "Mailing list",
            "website_label": "Website (leave this empty)",
            "subscribe_button": "Subscribe",
            "unsubscribe_button": "Unsubscribe",
        },
        "messages": {
            "back_to_homepage": "Back",
            "already_subscribed": "Already subscribed",
            "already_subscribed_message": "The email <code>{email}</code> is already subscribed.",
            "not_subscribed": "Warning: not subscribed",
            "not_subscribed_message": (
                "The email <code>{email}</code> is not currently subscribed. No action was taken."
            ),
            "confirmation_pending": "Confirmation pending",
            "confirmation_pending_message": (
                "<p>A confirmation email has already been sent to <code>{email}</code>.</p>"
                "<p>Please check your inbox or spam folder for the confirmation link.</p>"
            ),
            "operation_failed": "Operation failed",
            "operation_failed_message": "The operation was unsuccessful, please try again.",
            "backend_error": "Operation failed",
            "backend_error_message": (
                "<p>The operation could not be completed:</p><p><code>{error}</code></p>"
            ),
            "not_found": "Warning: not subscribed",
            "not_found_message": (
                "The email <code>{email}</code> was not found on the list. No action was taken."
            ),
            "rate_limit": "Rate limit exceeded",
            "rate_limit_message": (
                "Too many subscription attempts from your IP address. Please try again later."
            ),
            "invalid_email": "Invalid email format",
            "invalid_email_message": (
                "<p>The email <code>{email}</code> appears to be invalid.</p>"
                "<p>Please check the format and try again.</p>"
            ),
            "spam_detected": "Submission rejected",
            "spam_detected_message": (
                "Your submission has been identified as potential spam and has been rejected."
            ),
            "csrf_invalid": "Security validation failed",
            "csrf_invalid_message": (
                "Security token validation failed. This could happen if you used an old form "
                "or if your session expired."
            ),
            "unknown_list": "Unknown mailing list",
            "unknown_list_message": "The mailing list <code>{list}</code> does not exist.",
            "queue_full": "Service busy",
            "queue_full_message": "Too many requests are being processed. Please try again in a moment.",
            "confirmation_sent": "Confirmation email sent",
            "confirmation_sent_message": (
                "<p>A confirmation email has been sent to <code>{email}</code>.</p>"
                "<p>Please check your inbox and click the confirmation link.</p>"
            ),
            "subscribe_confirmation_success": "Thank you!",
            "subscribe_confirmation_success_message": "Your subscription has been confirmed. Thank you!",
            "unsubscribe_confirmation_success": "Bye!",
            "unsubscribe_confirmation_success_message": "Your unsubscription has been confirmed.",
            "confirmation_error": "Confirmation error",
            "confirmation_error_message": (
                "The confirmation link is invalid or has expired. Please try subscribing again."
            ),
            "confirmation_email_failed": "Confirmation email could not be sent",
            "confirmation_email_failed_message": (
                "<p>We couldn't send a confirmation email to <code>{email}</code>.</p>"
                "<p>Please try again later.</p>"
            ),
        },
        "emails": {
            "subscribe_confirm_subject": "[{list}] Please confirm your subscription",
            "subscribe_confirm_body_text": (
                "Thank you for subscribing to our mailing list with your email address: {email}.\n\n"
                "Please confirm your subscription by clicking on this link:\n\n{url}\n\n"
                "If you did not request this subscription, you can ignore this email."
            ),
            "subscribe_confirm_body_html": (
                "<html><body><p>Thank you for subscribing to our mailing list with your email "
                "address: <code>{email}</code>.</p><p>Please confirm your subscription by clicking "
                'on the following link:</p><p><a href="{url}">Confirm your subscription</a></p>'
                "<p>If you did not request this subscription, you can ignore this email.</p>"
                "</body></html>"
            ),
            "unsubscribe_confirm_subject": "[{list}] Please confirm your unsubscription",
            "unsubscribe_confirm_body_text": (
                "You have requested to unsubscribe from our mailing list with the email "
                "address: {email}.\n\nPlease confirm your unsubscription by clicking on the "
                "following link:\n\n{url}\n\n"
                "If you did not request this unsubscription, you can ignore this email."
            ),
            "unsubscribe_confirm_body_html": (
                "<html><body><p>You have requested to unsubscribe from our mailing list with the "
                "email address: <code>{email}</code>.</p><p>Please confirm your unsubscription by "
                'clicking on the following link:</p><p><a href="{url}">Confirm your '
                "unsubscription</a></p><p>If you did not request this unsubscription, you can "
                "ignore this email.</p></body></html>"
            ),
            "subscribed_subject": "[{list}] Subscription confirmed",
            "subscribed_body_text": (
                "Your email address {email} is now subscribed to {list}.\n\n"
                "To unsubscribe, visit {url}"
            ),
            "subscribed_body_html": (
                "<html><body><p>Your email address <code>{email}</code> is now subscribed to "
                '{list}.</p><p><a href="{url}">Unsubscribe</a></p></body></html>'
            ),
            "unsubscribed_subject": "[{list}] Unsubscription confirmed",
            "unsubscribed_body_text": (
                "Your email address {email} has been removed from {list}.\n\n"
                "To subscribe again, visit {url}"
            ),
            "unsubscribed_body_html": (
                "<html><body><p>Your email address <code>{email}</code> has been removed from "
                '{list}.</p><p><a href="{url}">Subscribe again</a></p></body></html>'
            ),
            "subscribers_added_subject": "[{list}] {count} new subscribers",
            "subscribers_added": "{count} new subscribers on the mailing list {list}",
        },
    },
    "fr": {
        "page": {
            "title": "Abonnement par e-mail",
            "heading": "Abonnement à notre liste de diffusion",
            "subheading": "Rejoignez notre liste pour recevoir des nouvelles",
            "footer": 'Fait avec <a target="new" href="https://github.com/bzg/subscribe">subscribe</a>',
        },
        "form": {
            "email_placeholder": "vous@exemple.com",
            "name_placeholder": "Votre nom (facultatif)",
            "list_label": "Liste de diffusion",
            "website_label": "Site web (laissez ce champ vide)",
            "subscribe_button": "Abonnement",
            "unsubscribe_button": "Désabonnement",
        },
        "messages": {
            "back_to_homepage": "Accueil",
            "already_subscribed": "Déjà abonné",
            "already_subscribed_message": "L'adresse e-mail <code>{email}</code> est déjà abonnée.",
            "not_subscribed": "Attention : non abonné",
            "not_subscribed_message": (
                "<p>L'adresse e-mail <code>{email}</code> n'est pas actuellement abonnée.</p>"
                "<p>Aucune action n'a été effectuée.</p>"
            ),
            "confirmation_pending": "Confirmation en attente",
            "confirmation_pending_message": (
                "<p>Un email de confirmation a déjà été envoyé à <code>{email}</code>.</p>"
                "<p>Veuillez vérifier votre boîte de réception ou dossier spam pour le lien "
                "de confirmation.</p>"
            ),
            "operation_failed": "Échec de l'opération",
            "operation_failed_message": "L'opération n'a pas abouti, veuillez réessayer.",
            "backend_error": "Échec de l'opération",
            "backend_error_message": (
                "<p>L'opération n'a pas pu aboutir avec cette erreur :</p><p><code>{error}</code></p>"
            ),
            "not_found": "Attention : non abonné",
            "not_found_message": (
                "L'adresse e-mail <code>{email}</code> n'a pas été trouvée sur la liste. "
                "Aucune action n'a été effectuée."
            ),
            "rate_limit": "Limite de taux dépassée",
            "rate_limit_message": (
                "Trop de tentatives d'abonnement depuis votre adresse IP. "
                "Veuillez réessayer plus tard."
            ),
            "invalid_email": "Format d'e-mail invalide",
            "invalid_email_message": (
                "<p>L'adresse e-mail <code>{email}</code> semble être invalide.</p>"
                "<p>Veuillez vérifier le format et réessayer.</p>"
            ),
            "spam_detected": "Soumission rejetée",
            "spam_detected_message": (
                "Votre soumission a été identifiée comme spam potentiel et a été rejetée."
            ),
            "csrf_invalid": "Échec de validation de sécurité",
            "csrf_invalid_message": (
                "La validation du jeton de sécurité a échoué. Cela peut se produire si vous "
                "avez utilisé un ancien formulaire ou si votre session a expiré."
            ),
            "unknown_list": "Liste inconnue",
            "unknown_list_message": "La liste de diffusion <code>{list}</code> n'existe pas.",
            "queue_full": "Service occupé",
            "queue_full_message": (
                "Trop de demandes sont en cours de traitement. Veuillez réessayer dans un instant."
            ),
            "confirmation_sent": "Email de confirmation envoyé",
            "confirmation_sent_message": (
                "<p>Un email de confirmation a été envoyé à <code>{email}</code>.</p>"
                "<p>Veuillez vérifier votre boîte de réception et cliquer sur le lien de "
                "confirmation.</p>"
            ),
            "subscribe_confirmation_success": "Merci !",
            "subscribe_confirmation_success_message": "Votre abonnement a été confirmé.",
            "unsubscribe_confirmation_success": "Au revoir !",
            "unsubscribe_confirmation_success_message": "Votre désabonnement est confirmé.",
            "confirmation_error": "Erreur de confirmation",
            "confirmation_error_message": (
                "<p>Le lien de confirmation n'est pas valide ou a expiré.</p>"
                "<p>Veuillez essayer de vous abonner à nouveau.</p>"
            ),
            "confirmation_email_failed": "L'email de confirmation n'a pas pu être envoyé.",
            "confirmation_email_failed_message": (
                "<p>Nous n'avons pas pu envoyer un email de confirmation à <code>{email}</code>.</p>"
                "<p>Veuillez réessayer plus tard.</p>"
            ),
        },
        "emails": {
            "subscribe_confirm_subject": "[{list}] Veuillez confirmer votre abonnement",
            "subscribe_confirm_body_text": (
                "Merci de vous être abonné à notre liste de diffusion avec votre adresse "
                "e-mail : {email}.\n\nVeuillez confirmer votre abonnement en cliquant sur ce "
                "lien :\n\n{url}\n\n"
                "Si vous n'avez pas demandé cet abonnement, vous pouvez ignorer cet e-mail."
            ),
            "subscribe_confirm_body_html": (
                "<html><body><p>Merci de vous être abonné à notre liste de diffusion avec votre "
                "adresse e-mail : <code>{email}</code>.</p><p>Veuillez confirmer votre abonnement "
                'en cliquant sur ce lien :</p><p><a href="{url}">Confirmer votre abonnement</a>'
                "</p><p>Si vous n'avez pas demandé cet abonnement, vous pouvez ignorer cet "
                "e-mail.</p></body></html>"
            ),
            "unsubscribe_confirm_subject": "[{list}] Veuillez confirmer votre désabonnement",
            "unsubscribe_confirm_body_text": (
                "Vous avez demandé à vous désabonner de notre liste de diffusion avec l'adresse "
                "e-mail : {email}.\n\nVeuillez confirmer votre désabonnement en cliquant sur ce "
                "lien :\n\n{url}\n\n"
                "Si vous n'avez pas demandé ce désabonnement, vous pouvez ignorer cet e-mail."
            ),
            "unsubscribe_confirm_body_html": (
                "<html><body><p>Vous avez demandé à vous désabonner de notre liste de diffusion "
                "avec l'adresse e-mail : <code>{email}</code>.</p><p>Veuillez confirmer votre "
                'désabonnement en cliquant sur ce lien :</p><p><a href="{url}">Confirmer votre '
                "désabonnement</a></p><p>Si vous n'avez pas demandé ce désabonnement, vous "
                "pouvez ignorer cet e-mail.</p></body></html>"
            ),
            "subscribed_subject": "[{list}] Abonnement confirmé",
            "subscribed_body_text": (
                "Votre adresse e-mail {email} est maintenant abonnée à {list}.\n\n"
                "Pour vous désabonner : {url}"
            ),
            "subscribed_body_html": (
                "<html><body><p>Votre adresse e-mail <code>{email}</code> est maintenant abonnée "
                'à {list}.</p><p><a href="{url}">Se désabonner</a></p></body></html>'
            ),
            "unsubscribed_subject": "[{list}] Désabonnement confirmé",
            "unsubscribed_body_text": (
                "Votre adresse e-mail {email} a été retirée de {list}.\n\n"
                "Pour vous abonner à nouveau : {url}"
            ),
            "unsubscribed_body_html": (
                "<html><body><p>Votre adresse e-mail <code>{email}</code> a été retirée de "
                '{list}.</p><p><a href="{url}">Se réabonner</a></p></body></html>'
            ),
            "subscribers_added_subject": "[{list}] {count} nouveaux abonnés",
            "subscribers_added": "{count} nouveaux abonnés sur la liste de diffusion {list}",
        },
    },
}


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def normalize_language(lang: str | None, default: str = "en") -> str:
    """Reduce 'fr-FR' and similar to a supported language code."""
    if lang:
        code = lang.strip().lower()[:2]
        if code in SUPPORTED_LANGUAGES:
            return code
    return default if default in SUPPORTED_LANGUAGES else "en"


def language_from_header(accept_language: str | None, default: str = "en") -> str:
    """French when the first preferred language is French, otherwise the default."""
    if not accept_language:
        return normalize_language(None, default)
    first = accept_language.split(",")[0].split(";")[0]
    return normalize_language(first, default) if first.strip().lower().startswith("fr") else default


def get_strings(lang: str | None, overrides: dict[str, Any] | None = None) -> dict[str, dict[str, str]]:
    """
    Strings for a language, with rules-file overrides merged in.

    overrides has the same shape as STRINGS: {"en": {"page": {"title": ...}}}.
    """
    code = normalize_language(lang)
    strings = STRINGS[code]
    if overrides and isinstance(overrides.get(code), dict):
        return _deep_merge(strings, overrides[code])
    return copy.deepcopy(strings)
