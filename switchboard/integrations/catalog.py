"""
Compiled-in integration catalog.

Flag keys and credential keys match the columns of the tenant_config
document. Credential keys are unique across the catalog; the registry
refuses to load otherwise.
"""

from __future__ import annotations

from .registry import (
    AuthType,
    CredentialField as Cred,
    FieldType,
    IntegrationCategory as Cat,
    IntegrationDefinition,
    SettingSpec as Setting,
    Tier,
)

PASSWORD = FieldType.PASSWORD

INTEGRATIONS: tuple[IntegrationDefinition, ...] = (
    # -------------------------------------------------------------------------
    # Communication
    # -------------------------------------------------------------------------
    IntegrationDefinition(
        id="whatsapp_wati",
        name="WhatsApp (WATI)",
        description="Send and receive WhatsApp messages through WATI",
        category=Cat.COMMUNICATION,
        flag_key="has_whatsapp_wati",
        credentials=(
            Cred("wati_api_key", "WATI API Key", PASSWORD, placeholder="wati_xxxxxxxx"),
            Cred("wati_endpoint", "WATI API Endpoint", FieldType.URL, placeholder="https://live-server-xxxx.wati.io"),
        ),
        settings=(
            Setting("auto_reply", "AI auto-reply", FieldType.BOOLEAN, default=True),
            Setting("business_hours_only", "Reply in business hours only", FieldType.BOOLEAN, default=False),
        ),
        docs_url="https://docs.wati.io",
        features=("Two-way messaging", "Template messages", "AI auto-reply"),
        popular=True,
    ),
    IntegrationDefinition(
        id="whatsapp_cloud",
        name="WhatsApp Cloud API",
        description="Connect directly to Meta's WhatsApp Cloud API",
        category=Cat.COMMUNICATION,
        flag_key="has_whatsapp_cloud",
        credentials=(
            Cred("whatsapp_phone_id", "Phone Number ID"),
            Cred("whatsapp_access_token", "Permanent Access Token", PASSWORD, placeholder="EAAxxxxxxxx..."),
            Cred("whatsapp_business_account_id", "Business Account ID", required=False),
        ),
        settings=(
            Setting("auto_reply", "AI auto-reply", FieldType.BOOLEAN, default=True),
        ),
        docs_url="https://developers.facebook.com/docs/whatsapp/cloud-api",
        features=("Two-way messaging", "Template messages"),
        tier=Tier.PROFESSIONAL,
    ),
    IntegrationDefinition(
        id="instagram",
        name="Instagram",
        description="Reply to Instagram DMs and comments",
        category=Cat.COMMUNICATION,
        flag_key="has_instagram",
        auth_type=AuthType.OAUTH,
        credentials=(
            Cred("instagram_page_id", "Instagram Page ID", placeholder="17841400xxxxx"),
            Cred("instagram_access_token", "Meta Page Token", PASSWORD, placeholder="EAAxxxxxxxx..."),
        ),
        features=("Direct messages", "Comment replies"),
    ),
    IntegrationDefinition(
        id="facebook",
        name="Facebook Messenger",
        description="Connect your Facebook Page inbox",
        category=Cat.COMMUNICATION,
        flag_key="has_facebook",
        auth_type=AuthType.OAUTH,
        credentials=(
            Cred("meta_page_id", "Facebook Page ID", placeholder="123456789xxxxx"),
            Cred("meta_page_token", "Meta Page Token", PASSWORD, placeholder="EAAxxxxxxxx..."),
        ),
        features=("Messenger inbox", "Lead ads"),
    ),
    IntegrationDefinition(
        id="telegram",
        name="Telegram",
        description="Connect your Telegram bot",
        category=Cat.COMMUNICATION,
        flag_key="has_telegram",
        credentials=(
            Cred("telegram_bot_token", "Bot Token", PASSWORD, placeholder="123456:ABC-DEF1234ghIkl"),
        ),
        setup_guide=(
            "Open @BotFather in Telegram",
            "Send /newbot and follow the prompts",
            "Paste the bot token here",
        ),
        features=("Bot messaging",),
    ),
    IntegrationDefinition(
        id="sms_twilio",
        name="SMS (Twilio)",
        description="Send and receive SMS via Twilio",
        category=Cat.COMMUNICATION,
        flag_key="has_sms",
        auth_type=AuthType.CREDENTIALS,
        credentials=(
            Cred("twilio_account_sid", "Account SID", placeholder="ACxxxxxxxxxxxxxxxx"),
            Cred("twilio_auth_token", "Auth Token", PASSWORD),
            Cred("twilio_phone_number", "Phone Number", placeholder="+1234567890"),
        ),
        settings=(
            Setting("daily_limit", "Daily message limit", FieldType.NUMBER, default=500),
            Setting("retries", "Delivery retries", FieldType.NUMBER, default=2),
            Setting("delivery_reports", "Delivery reports", FieldType.BOOLEAN, default=True),
        ),
        docs_url="https://www.twilio.com/docs/sms",
        features=("Outbound SMS", "Inbound SMS", "Delivery reports"),
        popular=True,
    ),
    IntegrationDefinition(
        id="email_smtp",
        name="Email (SMTP)",
        description="Send email through your own SMTP server",
        category=Cat.COMMUNICATION,
        flag_key="has_email",
        auth_type=AuthType.CREDENTIALS,
        credentials=(
            Cred("smtp_host", "SMTP Host", placeholder="smtp.example.com"),
            Cred("smtp_port", "SMTP Port", FieldType.NUMBER, placeholder="587"),
            Cred("smtp_user", "SMTP Username", placeholder="user@example.com"),
            Cred("smtp_pass", "SMTP Password", PASSWORD),
            Cred("smtp_from_email", "From Email", FieldType.EMAIL, required=False),
            Cred("smtp_from_name", "From Name", required=False),
        ),
        settings=(
            Setting("signature", "Email signature", FieldType.TEXTAREA, default=""),
            Setting("track_opens", "Track opens", FieldType.BOOLEAN, default=True),
        ),
        features=("Transactional email", "Campaigns"),
        popular=True,
    ),
    IntegrationDefinition(
        id="email_sendgrid",
        name="SendGrid",
        description="Deliver email through SendGrid",
        category=Cat.COMMUNICATION,
        flag_key="has_sendgrid",
        credentials=(
            Cred("sendgrid_api_key", "API Key", PASSWORD, placeholder="SG.xxxxxxxx"),
            Cred("sendgrid_from_email", "Verified Sender", FieldType.EMAIL),
        ),
        settings=(
            Setting("track_opens", "Track opens", FieldType.BOOLEAN, default=True),
            Setting("track_clicks", "Track clicks", FieldType.BOOLEAN, default=True),
        ),
        docs_url="https://docs.sendgrid.com",
        features=("Transactional email", "Analytics"),
    ),
    IntegrationDefinition(
        id="voice_vapi",
        name="Voice AI (Vapi)",
        description="AI voice agent for inbound and outbound calls",
        category=Cat.COMMUNICATION,
        flag_key="has_voice",
        credentials=(
            Cred("vapi_api_key", "Vapi API Key", PASSWORD),
            Cred("vapi_assistant_id", "Assistant ID"),
            Cred("vapi_phone_number_id", "Phone Number ID", required=False),
        ),
        settings=(
            Setting("voice", "Voice", FieldType.SELECT, default="alloy", options=("alloy", "echo", "nova", "shimmer")),
            Setting("max_call_minutes", "Max call length (minutes)", FieldType.NUMBER, default=10),
            Setting("record_calls", "Record calls", FieldType.BOOLEAN, default=False),
        ),
        docs_url="https://docs.vapi.ai",
        features=("Inbound calls", "Outbound calls", "Call transcripts"),
        tier=Tier.PROFESSIONAL,
        popular=True,
    ),
    IntegrationDefinition(
        id="website_chat",
        name="Website Chat",
        description="Embeddable chat widget for your website",
        category=Cat.COMMUNICATION,
        flag_key="has_website_chat",
        auth_type=AuthType.WEBHOOK,
        credentials=(
            Cred("website_chat_domain", "Allowed Domain", FieldType.URL),
        ),
        settings=(
            Setting("widget_color", "Widget color", FieldType.COLOR, default="#3B82F6"),
            Setting("greeting", "Greeting message", FieldType.TEXT, default="Hi! How can we help?"),
        ),
        features=("Live chat", "AI replies"),
    ),
    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------
    IntegrationDefinition(
        id="google_calendar",
        name="Google Calendar",
        description="Sync appointments with Google Calendar",
        category=Cat.SCHEDULING,
        flag_key="has_calendar",
        auth_type=AuthType.OAUTH,
        credentials=(
            Cred("google_calendar_id", "Calendar ID", placeholder="primary"),
        ),
        settings=(
            Setting("buffer_minutes", "Buffer between bookings", FieldType.NUMBER, default=15),
        ),
        features=("Two-way sync", "Availability"),
        popular=True,
    ),
    IntegrationDefinition(
        id="calendly",
        name="Calendly",
        description="Import Calendly bookings",
        category=Cat.SCHEDULING,
        flag_key="has_calendly",
        credentials=(
            Cred("calendly_api_key", "Personal Access Token", PASSWORD),
        ),
        features=("Booking sync",),
    ),
    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------
    IntegrationDefinition(
        id="stripe",
        name="Stripe",
        description="Accept card payments and send invoices",
        category=Cat.PAYMENTS,
        flag_key="has_stripe",
        credentials=(
            Cred("stripe_secret_key", "Secret Key", PASSWORD, placeholder="sk_live_xxx"),
            Cred("stripe_publishable_key", "Publishable Key", placeholder="pk_live_xxx"),
            Cred("stripe_webhook_secret", "Webhook Signing Secret", PASSWORD, required=False),
        ),
        settings=(
            Setting("currency", "Default currency", FieldType.SELECT, default="usd", options=("usd", "eur", "gbp", "aed", "inr")),
        ),
        docs_url="https://stripe.com/docs",
        features=("Payment links", "Invoices", "Subscriptions"),
        popular=True,
    ),
    IntegrationDefinition(
        id="razorpay",
        name="Razorpay",
        description="Accept payments in India",
        category=Cat.PAYMENTS,
        flag_key="has_razorpay",
        credentials=(
            Cred("razorpay_key_id", "Key ID"),
            Cred("razorpay_key_secret", "Key Secret", PASSWORD),
        ),
        features=("Payment links",),
    ),
    # -------------------------------------------------------------------------
    # CRM & support
    # -------------------------------------------------------------------------
    IntegrationDefinition(
        id="hubspot",
        name="HubSpot",
        description="Sync contacts and deals with HubSpot",
        category=Cat.CRM,
        flag_key="has_hubspot",
        credentials=(
            Cred("hubspot_api_key", "Private App Token", PASSWORD),
        ),
        settings=(
            Setting("sync_direction", "Sync direction", FieldType.SELECT, default="both", options=("import", "export", "both")),
        ),
        features=("Contact sync", "Deal sync"),
        tier=Tier.PROFESSIONAL,
    ),
    IntegrationDefinition(
        id="salesforce",
        name="Salesforce",
        description="Sync leads and opportunities with Salesforce",
        category=Cat.CRM,
        flag_key="has_salesforce",
        auth_type=AuthType.OAUTH,
        credentials=(
            Cred("salesforce_instance_url", "Instance URL", FieldType.URL),
            Cred("salesforce_access_token", "Access Token", PASSWORD),
        ),
        features=("Lead sync", "Opportunity sync"),
        tier=Tier.ENTERPRISE,
    ),
    IntegrationDefinition(
        id="zendesk",
        name="Zendesk",
        description="Create and update support tickets",
        category=Cat.SUPPORT,
        flag_key="has_zendesk",
        credentials=(
            Cred("zendesk_subdomain", "Subdomain"),
            Cred("zendesk_email", "Agent Email", FieldType.EMAIL),
            Cred("zendesk_api_token", "API Token", PASSWORD),
        ),
        features=("Ticket sync",),
    ),
    # -------------------------------------------------------------------------
    # E-commerce
    # -------------------------------------------------------------------------
    IntegrationDefinition(
        id="shopify",
        name="Shopify",
        description="Sync orders and customers from Shopify",
        category=Cat.ECOMMERCE,
        flag_key="has_shopify",
        credentials=(
            Cred("shopify_store_domain", "Store Domain", placeholder="mystore.myshopify.com"),
            Cred("shopify_access_token", "Admin API Token", PASSWORD),
        ),
        settings=(
            Setting("abandoned_cart_recovery", "Abandoned cart recovery", FieldType.BOOLEAN, default=True),
        ),
        features=("Order sync", "Abandoned carts"),
    ),
    # -------------------------------------------------------------------------
    # AI & enrichment
    # -------------------------------------------------------------------------
    IntegrationDefinition(
        id="openai",
        name="OpenAI",
        description="Bring your own OpenAI key",
        category=Cat.AI,
        flag_key="has_openai",
        credentials=(
            Cred("openai_api_key", "API Key", PASSWORD, placeholder="sk-..."),
        ),
        settings=(
            Setting("model", "Model", FieldType.SELECT, default="gpt-4o-mini", options=("gpt-4o-mini", "gpt-4o")),
            Setting("temperature", "Temperature", FieldType.NUMBER, default=0.7),
        ),
        features=("AI replies", "Content generation"),
    ),
    IntegrationDefinition(
        id="apify",
        name="Apify",
        description="Web scraping for lead generation",
        category=Cat.AI,
        flag_key="has_apify",
        credentials=(
            Cred("apify_api_token", "API Token", PASSWORD),
        ),
        features=("Lead scraping",),
    ),
    IntegrationDefinition(
        id="apollo",
        name="Apollo.io",
        description="B2B contact enrichment",
        category=Cat.AI,
        flag_key="has_apollo",
        credentials=(
            Cred("apollo_api_key", "API Key", PASSWORD),
        ),
        features=("Contact enrichment",),
        tier=Tier.PROFESSIONAL,
    ),
    # -------------------------------------------------------------------------
    # Productivity, analytics, forms
    # -------------------------------------------------------------------------
    IntegrationDefinition(
        id="slack",
        name="Slack",
        description="Team notifications in Slack",
        category=Cat.PRODUCTIVITY,
        flag_key="has_slack",
        auth_type=AuthType.WEBHOOK,
        credentials=(
            Cred("slack_webhook_url", "Incoming Webhook URL", FieldType.URL),
        ),
        settings=(
            Setting("notify_new_leads", "Notify on new leads", FieldType.BOOLEAN, default=True),
            Setting("channel", "Channel", FieldType.TEXT, default="#sales"),
        ),
        features=("Notifications",),
    ),
    IntegrationDefinition(
        id="zapier",
        name="Zapier",
        description="Connect to thousands of apps",
        category=Cat.PRODUCTIVITY,
        flag_key="has_zapier",
        auth_type=AuthType.WEBHOOK,
        credentials=(
            Cred("zapier_webhook_url", "Catch Hook URL", FieldType.URL),
        ),
        features=("Automations",),
    ),
    IntegrationDefinition(
        id="google_analytics",
        name="Google Analytics",
        description="Attribute conversions to traffic sources",
        category=Cat.ANALYTICS,
        flag_key="has_google_analytics",
        credentials=(
            Cred("ga_measurement_id", "Measurement ID", placeholder="G-XXXXXXX"),
            Cred("ga_api_secret", "API Secret", PASSWORD, required=False),
        ),
        features=("Conversion tracking",),
    ),
    IntegrationDefinition(
        id="typeform",
        name="Typeform",
        description="Capture leads from Typeform submissions",
        category=Cat.FORMS,
        flag_key="has_typeform",
        auth_type=AuthType.WEBHOOK,
        credentials=(
            Cred("typeform_api_key", "Personal Token", PASSWORD),
        ),
        features=("Lead capture",),
    ),
    IntegrationDefinition(
        id="tiktok",
        name="TikTok",
        description="Reply to TikTok messages",
        category=Cat.COMMUNICATION,
        flag_key="has_tiktok",
        auth_type=AuthType.OAUTH,
        credentials=(
            Cred("tiktok_access_token", "Access Token", PASSWORD),
        ),
        features=("Direct messages",),
        coming_soon=True,
    ),
)

__all__ = ["INTEGRATIONS"]
