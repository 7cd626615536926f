"""HTTP routers: public storefront, admin and payment webhooks."""
