"""Partyfud 前台本地購物車應用。"""
