"""Schema package"""
